"""
Engine-side snapshots of users and preferences. Dataclasses only; no ORM, no I/O.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional


class Direction(str, Enum):
    TO_WORK = "TO_WORK"
    FROM_WORK = "FROM_WORK"


class Role(str, Enum):
    DRIVER = "DRIVER"
    RIDER = "RIDER"
    EITHER = "EITHER"


class RejectReason(str, Enum):
    TOO_FAR = "too_far"
    DIRECTION_MISMATCH = "direction_mismatch"
    ROLE_INCOMPATIBLE = "role_incompatible"
    NO_SCHEDULE_OVERLAP = "no_schedule_overlap"
    DETOUR_TOO_LONG = "detour_too_long"
    INVALID_DATA = "invalid_data"


@dataclass(frozen=True)
class UserLocation:
    user_id: str
    lat: Optional[float]
    lng: Optional[float]
    address: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(frozen=True)
class CommutePreference:
    user_id: str
    direction: Direction
    earliest: int  # minute of day
    latest: int  # minute of day
    days: FrozenSet[int]  # 0=Mon .. 4=Fri
    role: Role


@dataclass(frozen=True)
class CandidateProfile:
    """One member of the population: where they live and what they want."""
    location: UserLocation
    preferences: List[CommutePreference] = field(default_factory=list)


@dataclass(frozen=True)
class ScheduleOverlap:
    start: int
    end: int
    minutes: int
    common_days: FrozenSet[int]

    @property
    def viable(self) -> bool:
        return self.minutes > 0 and len(self.common_days) > 0


@dataclass(frozen=True)
class MatchCandidatePair:
    requester_preference: CommutePreference
    candidate: UserLocation
    candidate_preference: CommutePreference
    detour_minutes: float
    overlap: ScheduleOverlap


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    detail: str = ""


@dataclass(frozen=True)
class Candidate:
    pair: MatchCandidatePair


@dataclass(frozen=True)
class ScoredMatch:
    requester_id: str
    partner_id: str
    direction: Direction
    detour_minutes: float
    overlap_minutes: int
    common_days: FrozenSet[int]
    rank_score: float
    overlap_start: int = 0  # minute of day
    overlap_end: int = 0
