import pytest

from match_service.engine.schedule import format_hhmm, parse_days, parse_hhmm, schedule_overlap
from match_service.errors import DataIntegrityError

MON, TUE, WED, THU, FRI = range(5)


def test_overlapping_windows_on_shared_days():
    overlap = schedule_overlap(
        parse_hhmm("07:00"), parse_hhmm("08:30"), {MON, WED},
        parse_hhmm("07:30"), parse_hhmm("09:00"), {MON, WED},
    )
    assert overlap.minutes == 60
    assert overlap.common_days == {MON, WED}
    assert format_hhmm(overlap.start) == "07:30"
    assert format_hhmm(overlap.end) == "08:30"
    assert overlap.viable


def test_common_days_are_the_intersection():
    overlap = schedule_overlap(420, 510, {MON, TUE, WED}, 420, 510, {WED, THU})
    assert overlap.common_days == {WED}
    assert overlap.minutes == 90


@pytest.mark.parametrize("window", [(0, 1439), (420, 510), (600, 660)])
def test_disjoint_days_never_overlap(window):
    overlap = schedule_overlap(0, 1439, {MON, TUE}, window[0], window[1], {THU, FRI})
    assert overlap.minutes == 0
    assert overlap.common_days == frozenset()
    assert not overlap.viable


def test_back_to_back_windows_are_not_viable():
    overlap = schedule_overlap(420, 480, {MON}, 480, 540, {MON})
    assert overlap.minutes == 0
    assert overlap.common_days == {MON}
    assert not overlap.viable


def test_parse_hhmm():
    assert parse_hhmm("00:00") == 0
    assert parse_hhmm("07:30") == 450
    assert parse_hhmm("23:59") == 1439


@pytest.mark.parametrize("value", ["7", "24:00", "07:60", "ab:cd", None])
def test_parse_hhmm_rejects_malformed_values(value):
    with pytest.raises(DataIntegrityError):
        parse_hhmm(value)


def test_parse_days_accepts_stored_json_and_lists():
    assert parse_days("[0, 2, 2]") == {MON, WED}
    assert parse_days([4]) == {FRI}


@pytest.mark.parametrize("raw", ["[]", "not json", "[5]", "[-1]", '["Mon"]', "[true]", "{}"])
def test_parse_days_rejects_malformed_sets(raw):
    with pytest.raises(DataIntegrityError):
        parse_days(raw)
