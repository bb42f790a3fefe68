from dataclasses import dataclass
from typing import AsyncIterator, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carpool_shared.events import build_event, to_json
from carpool_shared.redis_client import redis_client

from .config import DEFAULT_MATCH_CONFIG, MATCH_LOCK_TIMEOUT_SECONDS, MatchConfig
from .engine import models as engine_models
from .engine.geo import bounding_box
from .engine.pipeline import MatchEngine
from .engine.schedule import parse_days, parse_hhmm
from .errors import DataIntegrityError, PreconditionError
from .locks import UserLocks
from .models import CommutePreference, MatchResult, User
from .rabbitmq import publisher
from .store import replace_matches_for_user

user_locks = UserLocks(redis_client, timeout_seconds=MATCH_LOCK_TIMEOUT_SECONDS)


@dataclass
class ComputeOutcome:
    rows: List[MatchResult]
    partner_names: dict
    scored: dict  # match id -> ScoredMatch
    scanned: int


# ---- ORM rows -> engine snapshots ----

def to_location(user: User) -> engine_models.UserLocation:
    return engine_models.UserLocation(
        user_id=user.id,
        lat=user.home_lat,
        lng=user.home_lng,
        address=user.home_address,
    )


def to_preference(row: CommutePreference) -> engine_models.CommutePreference:
    try:
        direction = engine_models.Direction(row.direction)
        role = engine_models.Role(row.role)
    except ValueError:
        raise DataIntegrityError(f"Preference {row.id} has direction={row.direction!r} role={row.role!r}")

    return engine_models.CommutePreference(
        user_id=row.user_id,
        direction=direction,
        earliest=parse_hhmm(row.earliest_time),
        latest=parse_hhmm(row.latest_time),
        days=parse_days(row.days_of_week),
        role=role,
    )


def preferences_payload(row: CommutePreference) -> dict:
    try:
        days = sorted(parse_days(row.days_of_week))
    except DataIntegrityError:
        days = []
    return {
        "id": row.id,
        "user_id": row.user_id,
        "direction": row.direction,
        "earliest_time": row.earliest_time,
        "latest_time": row.latest_time,
        "days_of_week": days,
        "role": row.role,
    }


# ---- Loading ----

async def load_preferences(db: AsyncSession, user_id: str) -> List[CommutePreference]:
    result = await db.execute(
        select(CommutePreference)
        .where(CommutePreference.user_id == user_id)
        .order_by(CommutePreference.direction)
    )
    return list(result.scalars().all())


async def iter_candidate_pages(
    db: AsyncSession,
    requester: engine_models.UserLocation,
    config: MatchConfig,
) -> AsyncIterator[List[engine_models.CandidateProfile]]:
    """
    Other geocoded users near the requester, in keyset-paginated pages.
    The bounding box is a cheap SQL-side narrowing; the engine applies the
    exact distance check.
    """
    lat_min, lat_max, lng_min, lng_max = bounding_box(
        requester.lat, requester.lng, config.distance_threshold_mi
    )

    loaded = 0
    last_id = None
    while loaded < config.max_candidates:
        stmt = select(User).where(
            User.id != requester.user_id,
            User.home_lat.is_not(None),
            User.home_lng.is_not(None),
            User.home_lat.between(lat_min, lat_max),
        )
        if lng_min is not None:
            stmt = stmt.where(User.home_lng.between(lng_min, lng_max))
        if last_id is not None:
            stmt = stmt.where(User.id > last_id)

        limit = min(config.page_size, config.max_candidates - loaded)
        users = list((await db.execute(stmt.order_by(User.id).limit(limit))).scalars().all())
        if not users:
            break

        prefs_result = await db.execute(
            select(CommutePreference).where(CommutePreference.user_id.in_([u.id for u in users]))
        )
        prefs_by_user: dict[str, list] = {}
        for row in prefs_result.scalars().all():
            prefs_by_user.setdefault(row.user_id, []).append(row)

        page = []
        for user in users:
            try:
                preferences = [to_preference(p) for p in prefs_by_user.get(user.id, [])]
            except DataIntegrityError as e:
                print(f"[match-service] skipping candidate {user.id}: {e}")
                continue
            page.append(engine_models.CandidateProfile(location=to_location(user), preferences=preferences))
        yield page

        loaded += len(users)
        last_id = users[-1].id
        if len(users) < limit:
            break

    if loaded >= config.max_candidates:
        print(f"[match-service] candidate scan for {requester.user_id} capped at {config.max_candidates}")


# ---- Operations ----

async def compute_matches(
    db: AsyncSession,
    requester_id: str,
    config: MatchConfig = DEFAULT_MATCH_CONFIG,
    locks: UserLocks = user_locks,
) -> ComputeOutcome:
    engine = MatchEngine(config)

    async with locks.hold(requester_id):
        user = await db.get(User, requester_id)
        if user is None:
            raise PreconditionError("Please set your home address first")

        requester = to_location(user)

        requester_prefs = []
        for row in await load_preferences(db, requester_id):
            try:
                requester_prefs.append(to_preference(row))
            except DataIntegrityError as e:
                print(f"[match-service] ignoring preference of requester {requester_id}: {e}")

        usable = engine.check_requester(requester, requester_prefs)

        pairs = []
        scanned = 0
        async for page in iter_candidate_pages(db, requester, config):
            scanned += len(page)
            pairs.extend(engine.survivors(requester, usable, page))

        names = {}
        partner_ids = {p.candidate.user_id for p in pairs}
        if partner_ids:
            result = await db.execute(select(User.id, User.display_name).where(User.id.in_(partner_ids)))
            names = {uid: name for uid, name in result.all()}

        scored = engine.rank(requester_id, pairs)
        rows = await replace_matches_for_user(db, requester_id, scored)

    print(f"[match-service] computed {len(rows)} matches for {requester_id} ({scanned} candidates scanned)")

    event = build_event(
        "matches.computed",
        {
            "user_id": requester_id,
            "computed": len(rows),
            "partner_ids": sorted({r.user_b_id for r in rows}),
        },
    )
    await publisher.publish("matches.computed", to_json(event))

    return ComputeOutcome(
        rows=rows,
        partner_names=names,
        scored={row.id: m for row, m in zip(rows, scored)},
        scanned=scanned,
    )
