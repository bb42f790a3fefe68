"""
Candidate filter pipeline.

Two stages per candidate user:
  1. population prune: straight-line distance between homes
  2. per preference pair: direction -> role -> schedule overlap -> detour

Every stage returns a tagged result: Rejected(reason) or Candidate(pair).
"""

import math
from typing import Iterable, List, Sequence

from ..config import DEFAULT_MATCH_CONFIG, MatchConfig
from ..errors import DataIntegrityError, PreconditionError
from .geo import estimate_detour_minutes, haversine_miles
from .models import (
    Candidate,
    CandidateProfile,
    CommutePreference,
    Direction,
    MatchCandidatePair,
    Rejected,
    RejectReason,
    Role,
    ScoredMatch,
    UserLocation,
)
from .ranking import rank
from .roles import roles_compatible
from .schedule import WEEKDAYS, check_window, schedule_overlap


def _check_location(location: UserLocation) -> None:
    if not location.has_coordinates:
        raise DataIntegrityError(f"User {location.user_id} has no coordinates")
    if math.isnan(location.lat) or math.isnan(location.lng):
        raise DataIntegrityError(f"User {location.user_id} has NaN coordinates")


def _check_preference(pref: CommutePreference) -> None:
    if not isinstance(pref.direction, Direction) or not isinstance(pref.role, Role):
        raise DataIntegrityError(f"Preference of {pref.user_id} has unknown direction/role")
    check_window(pref.earliest, pref.latest)
    if not pref.days or any(d not in range(len(WEEKDAYS)) for d in pref.days):
        raise DataIntegrityError(f"Preference of {pref.user_id} has an invalid day set")


class MatchEngine:
    def __init__(self, config: MatchConfig = DEFAULT_MATCH_CONFIG):
        self.config = config

    @property
    def work(self) -> tuple[float, float]:
        return self.config.work_lat, self.config.work_lng

    def check_requester(
        self,
        requester: UserLocation,
        preferences: Sequence[CommutePreference],
    ) -> List[CommutePreference]:
        """
        Abort before any candidate is examined if the requester cannot be matched.
        Returns the requester's usable preferences; malformed ones are dropped.
        """
        try:
            _check_location(requester)
        except DataIntegrityError:
            raise PreconditionError("Please set your home address first")

        usable = []
        for pref in preferences:
            try:
                _check_preference(pref)
            except DataIntegrityError as e:
                print(f"[match-service] ignoring preference of requester {requester.user_id}: {e}")
                continue
            usable.append(pref)

        if not usable:
            raise PreconditionError("Please set your commute preferences first")
        return usable

    def prune(self, requester: UserLocation, candidate: UserLocation) -> Rejected | None:
        """Population-level distance check, once per candidate user."""
        distance = haversine_miles(requester.lat, requester.lng, candidate.lat, candidate.lng)
        if distance > self.config.distance_threshold_mi:
            return Rejected(RejectReason.TOO_FAR, f"{distance:.1f} mi apart")
        return None

    def evaluate_pair(
        self,
        requester: UserLocation,
        requester_pref: CommutePreference,
        candidate: UserLocation,
        candidate_pref: CommutePreference,
    ) -> Rejected | Candidate:
        if requester_pref.direction != candidate_pref.direction:
            return Rejected(RejectReason.DIRECTION_MISMATCH)

        if not roles_compatible(requester_pref.role, candidate_pref.role):
            return Rejected(RejectReason.ROLE_INCOMPATIBLE)

        overlap = schedule_overlap(
            requester_pref.earliest, requester_pref.latest, requester_pref.days,
            candidate_pref.earliest, candidate_pref.latest, candidate_pref.days,
        )
        if not overlap.viable:
            return Rejected(RejectReason.NO_SCHEDULE_OVERLAP)

        detour = estimate_detour_minutes(
            (requester.lat, requester.lng),
            (candidate.lat, candidate.lng),
            self.work,
            self.config.minutes_per_mile,
        )
        if detour > self.config.detour_threshold_min:
            return Rejected(RejectReason.DETOUR_TOO_LONG, f"{detour:.1f} min")

        return Candidate(
            MatchCandidatePair(
                requester_preference=requester_pref,
                candidate=candidate,
                candidate_preference=candidate_pref,
                detour_minutes=detour,
                overlap=overlap,
            )
        )

    def evaluate_candidate(
        self,
        requester: UserLocation,
        requester_prefs: Sequence[CommutePreference],
        profile: CandidateProfile,
    ) -> List[Rejected | Candidate]:
        """
        All outcomes for one candidate user. A whole-user rejection (distance,
        bad data) comes back as a single Rejected entry.
        """
        candidate = profile.location
        try:
            _check_location(candidate)
            for pref in profile.preferences:
                _check_preference(pref)
        except DataIntegrityError as e:
            return [Rejected(RejectReason.INVALID_DATA, str(e))]

        too_far = self.prune(requester, candidate)
        if too_far:
            return [too_far]

        return [
            self.evaluate_pair(requester, mine, candidate, theirs)
            for mine in requester_prefs
            for theirs in profile.preferences
        ]

    def survivors(
        self,
        requester: UserLocation,
        requester_prefs: Sequence[CommutePreference],
        population: Iterable[CandidateProfile],
    ) -> List[MatchCandidatePair]:
        pairs = []
        for profile in population:
            if profile.location.user_id == requester.user_id:
                continue
            for outcome in self.evaluate_candidate(requester, requester_prefs, profile):
                if isinstance(outcome, Candidate):
                    pairs.append(outcome.pair)
                elif outcome.reason == RejectReason.INVALID_DATA:
                    print(f"[match-service] skipping candidate {profile.location.user_id}: {outcome.detail}")
        return pairs

    def rank(self, requester_id: str, pairs: Iterable[MatchCandidatePair]) -> List[ScoredMatch]:
        return rank(requester_id, pairs, self.config.w_detour, self.config.w_overlap)

    def compute(
        self,
        requester: UserLocation,
        requester_prefs: Sequence[CommutePreference],
        population: Iterable[CandidateProfile],
    ) -> List[ScoredMatch]:
        usable = self.check_requester(requester, requester_prefs)
        return self.rank(requester.user_id, self.survivors(requester, usable, population))
