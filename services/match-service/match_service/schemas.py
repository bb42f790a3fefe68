from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .engine.schedule import WEEKDAYS, parse_hhmm
from .errors import DataIntegrityError

HHMM_PATTERN = r"^\d{2}:\d{2}$"


# ---- Profile ----

class UpdateProfile(BaseModel):
    home_address: Optional[str] = None
    home_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    home_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    display_name: Optional[str] = None

    @model_validator(mode="after")
    def _both_coordinates_or_neither(self):
        if (self.home_lat is None) != (self.home_lng is None):
            raise ValueError("home_lat and home_lng must be set together")
        return self


class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: str
    avatar_url: Optional[str] = None
    home_address: Optional[str] = None
    home_lat: Optional[float] = None
    home_lng: Optional[float] = None


# ---- Preferences ----

class UpsertPreference(BaseModel):
    direction: Literal["TO_WORK", "FROM_WORK"]
    earliest_time: str = Field(pattern=HHMM_PATTERN)
    latest_time: str = Field(pattern=HHMM_PATTERN)
    days_of_week: List[int] = Field(min_length=1)
    role: Literal["DRIVER", "RIDER", "EITHER"]

    @model_validator(mode="after")
    def _check_schedule(self):
        for d in self.days_of_week:
            if not 0 <= d < len(WEEKDAYS):
                raise ValueError(f"Invalid day: {d}. Allowed: 0 (Mon) .. {len(WEEKDAYS) - 1} (Fri)")

        try:
            earliest = parse_hhmm(self.earliest_time)
            latest = parse_hhmm(self.latest_time)
        except DataIntegrityError:
            raise ValueError("Invalid time format")
        if latest <= earliest:
            raise ValueError("Latest departure must be after earliest departure")

        self.days_of_week = sorted(set(self.days_of_week))
        return self


class PreferenceResponse(BaseModel):
    id: str
    user_id: str
    direction: str
    earliest_time: str
    latest_time: str
    days_of_week: List[int]
    role: str


# ---- Matches ----

class ComputedMatch(BaseModel):
    id: str
    partner_id: str
    partner_name: Optional[str] = None
    direction: str
    detour_minutes: float
    time_overlap_minutes: float
    common_days: List[int]
    overlap_start: str  # HH:MM
    overlap_end: str
    rank_score: float


class ComputeMatchesResponse(BaseModel):
    computed: int
    matches: List[ComputedMatch]


class MatchListing(BaseModel):
    id: str
    partner_id: str
    partner_name: Optional[str] = None
    partner_avatar: Optional[str] = None
    # coarse area only, never the partner's full address
    partner_area: Optional[str] = None
    direction: str
    detour_minutes: float
    time_overlap_minutes: float
    rank_score: float
    computed_at: datetime


class WorkplaceConfig(BaseModel):
    workplace_name: str
    workplace_address: str
    work_lat: float
    work_lng: float
