import pytest

from match_service.config import MatchConfig
from match_service.engine.models import (
    Candidate,
    CandidateProfile,
    Direction,
    Rejected,
    RejectReason,
    Role,
    UserLocation,
)
from match_service.engine.pipeline import MatchEngine
from match_service.errors import PreconditionError

from factories import CHICAGO, NEARBY_HOME, REQUESTER_HOME, location, pref, profile

# ~10 miles south of the requester, i.e. away from the workplace
SOUTH_HOME = (42.75, -89.50)

CONFIG = MatchConfig(work_lat=42.9914, work_lng=-89.5326)


@pytest.fixture
def engine():
    return MatchEngine(CONFIG)


@pytest.fixture
def alice():
    return location("alice")


def test_nearby_compatible_candidate_survives(engine, alice):
    outcomes = engine.evaluate_candidate(alice, [pref("alice")], profile("bob", NEARBY_HOME, pref("bob")))

    assert len(outcomes) == 1
    assert isinstance(outcomes[0], Candidate)
    pair = outcomes[0].pair
    assert pair.candidate.user_id == "bob"
    assert pair.overlap.minutes == 90
    assert 0 <= pair.detour_minutes <= CONFIG.detour_threshold_min


def test_far_candidate_is_pruned_before_preference_checks(engine, alice):
    outcomes = engine.evaluate_candidate(alice, [pref("alice")], profile("carol", CHICAGO, pref("carol")))
    assert outcomes == [Rejected(RejectReason.TOO_FAR, outcomes[0].detail)]

    survivors = engine.survivors(alice, [pref("alice")], [profile("carol", CHICAGO, pref("carol"))])
    assert survivors == []


def test_far_candidate_never_survives_even_with_generous_detour(alice):
    engine = MatchEngine(MatchConfig(detour_threshold_min=10_000))
    survivors = engine.survivors(alice, [pref("alice")], [profile("carol", CHICAGO, pref("carol"))])
    assert survivors == []


def test_direction_mismatch(engine, alice):
    outcome = engine.evaluate_pair(
        alice, pref("alice"), location("bob", NEARBY_HOME), pref("bob", direction=Direction.FROM_WORK)
    )
    assert outcome == Rejected(RejectReason.DIRECTION_MISMATCH)


def test_two_riders_are_rejected(engine, alice):
    outcome = engine.evaluate_pair(
        alice, pref("alice", role=Role.RIDER), location("bob", NEARBY_HOME), pref("bob", role=Role.RIDER)
    )
    assert outcome == Rejected(RejectReason.ROLE_INCOMPATIBLE)


def test_no_shared_day_is_rejected(engine, alice):
    outcome = engine.evaluate_pair(
        alice, pref("alice", days={0, 1}), location("bob", NEARBY_HOME), pref("bob", days={3, 4})
    )
    assert outcome == Rejected(RejectReason.NO_SCHEDULE_OVERLAP)


def test_disjoint_time_windows_are_rejected(engine, alice):
    outcome = engine.evaluate_pair(
        alice,
        pref("alice", earliest=6 * 60, latest=7 * 60),
        location("bob", NEARBY_HOME),
        pref("bob", earliest=8 * 60, latest=9 * 60),
    )
    assert outcome == Rejected(RejectReason.NO_SCHEDULE_OVERLAP)


def test_long_detour_is_rejected(engine, alice):
    outcome = engine.evaluate_pair(alice, pref("alice"), location("dave", SOUTH_HOME), pref("dave"))
    assert isinstance(outcome, Rejected)
    assert outcome.reason == RejectReason.DETOUR_TOO_LONG


def test_thresholds_come_from_the_injected_config(alice):
    lenient = MatchEngine(MatchConfig(detour_threshold_min=120))
    outcome = lenient.evaluate_pair(alice, pref("alice"), location("dave", SOUTH_HOME), pref("dave"))
    assert isinstance(outcome, Candidate)

    strict = MatchEngine(MatchConfig(distance_threshold_mi=1))
    assert strict.prune(alice, location("bob", NEARBY_HOME)).reason == RejectReason.TOO_FAR


def test_every_preference_pair_is_considered(engine, alice):
    mine = [pref("alice"), pref("alice", direction=Direction.FROM_WORK, earliest=16 * 60, latest=18 * 60)]
    theirs = profile(
        "bob",
        NEARBY_HOME,
        pref("bob"),
        pref("bob", direction=Direction.FROM_WORK, earliest=17 * 60, latest=19 * 60),
    )

    survivors = engine.survivors(alice, mine, [theirs])

    assert [(p.requester_preference.direction, p.overlap.minutes) for p in survivors] == [
        (Direction.TO_WORK, 90),
        (Direction.FROM_WORK, 60),
    ]


def test_bad_candidate_data_only_skips_that_candidate(engine, alice):
    broken = profile("eve", NEARBY_HOME, pref("eve", earliest=9 * 60, latest=8 * 60))
    no_coordinates = CandidateProfile(location=UserLocation("frank", None, None), preferences=[pref("frank")])
    good = profile("bob", NEARBY_HOME, pref("bob"))

    assert engine.evaluate_candidate(alice, [pref("alice")], broken)[0].reason == RejectReason.INVALID_DATA
    assert engine.evaluate_candidate(alice, [pref("alice")], no_coordinates)[0].reason == RejectReason.INVALID_DATA

    survivors = engine.survivors(alice, [pref("alice")], [broken, no_coordinates, good])
    assert [p.candidate.user_id for p in survivors] == ["bob"]


def test_requester_is_never_their_own_candidate(engine, alice):
    survivors = engine.survivors(alice, [pref("alice")], [profile("alice", REQUESTER_HOME, pref("alice"))])
    assert survivors == []


def test_requester_without_coordinates_is_a_precondition_failure(engine):
    with pytest.raises(PreconditionError, match="home address"):
        engine.compute(UserLocation("alice", None, None), [pref("alice")], [])


def test_requester_without_preferences_is_a_precondition_failure(engine, alice):
    with pytest.raises(PreconditionError, match="commute preferences"):
        engine.compute(alice, [], [profile("bob", NEARBY_HOME, pref("bob"))])


def test_requester_with_only_malformed_preferences_is_a_precondition_failure(engine, alice):
    with pytest.raises(PreconditionError):
        engine.compute(alice, [pref("alice", days=set())], [])


def test_compute_returns_matches_sorted_by_score(engine, alice):
    population = [
        profile("bob", NEARBY_HOME, pref("bob", earliest=8 * 60, latest=9 * 60)),
        profile("carl", NEARBY_HOME, pref("carl")),
    ]

    matches = engine.compute(alice, [pref("alice")], population)

    assert [m.partner_id for m in matches] == ["carl", "bob"]
    assert [m.overlap_minutes for m in matches] == [90, 30]
    assert matches[0].rank_score < matches[1].rank_score
    assert all(m.requester_id == "alice" for m in matches)
