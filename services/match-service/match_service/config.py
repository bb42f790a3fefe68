import os
from dataclasses import dataclass

SERVICE_NAME = "match-service"

RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

# Workplace destination shared by every commuter (Verona campus)
WORK_LAT = float(os.getenv("WORK_LAT") or "42.9914")
WORK_LNG = float(os.getenv("WORK_LNG") or "-89.5326")
WORKPLACE_NAME = os.getenv("WORKPLACE_NAME") or "Epic Systems"
WORKPLACE_ADDRESS = os.getenv("WORKPLACE_ADDRESS") or "1979 Milky Way, Verona, WI 53593"

DISTANCE_THRESHOLD_MI = float(os.getenv("DISTANCE_THRESHOLD_MI") or "30")
DETOUR_THRESHOLD_MIN = float(os.getenv("DETOUR_THRESHOLD_MIN") or "15")
# Rough suburban driving pace
MINUTES_PER_MILE = float(os.getenv("MINUTES_PER_MILE") or "2")
W_DETOUR = float(os.getenv("W_DETOUR") or "1.0")
W_OVERLAP = float(os.getenv("W_OVERLAP") or "0.5")

MATCH_PAGE_SIZE = int(os.getenv("MATCH_PAGE_SIZE") or "500")
MATCH_MAX_CANDIDATES = int(os.getenv("MATCH_MAX_CANDIDATES") or "5000")
MATCH_LOCK_TIMEOUT_SECONDS = float(os.getenv("MATCH_LOCK_TIMEOUT_SECONDS") or "30")


@dataclass(frozen=True)
class MatchConfig:
    """Tunables for one match computation. Passed to the engine, never read globally."""
    work_lat: float = 42.9914
    work_lng: float = -89.5326
    distance_threshold_mi: float = 30.0
    detour_threshold_min: float = 15.0
    minutes_per_mile: float = 2.0
    w_detour: float = 1.0
    w_overlap: float = 0.5
    page_size: int = 500
    max_candidates: int = 5000


DEFAULT_MATCH_CONFIG = MatchConfig(
    work_lat=WORK_LAT,
    work_lng=WORK_LNG,
    distance_threshold_mi=DISTANCE_THRESHOLD_MI,
    detour_threshold_min=DETOUR_THRESHOLD_MIN,
    minutes_per_mile=MINUTES_PER_MILE,
    w_detour=W_DETOUR,
    w_overlap=W_OVERLAP,
    page_size=MATCH_PAGE_SIZE,
    max_candidates=MATCH_MAX_CANDIDATES,
)
