import json
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select

from carpool_shared.events import build_event, to_json

from .config import WORKPLACE_ADDRESS, WORKPLACE_NAME, DEFAULT_MATCH_CONFIG
from .db import SessionLocal
from .engine.ranking import display_round
from .engine.schedule import format_hhmm
from .errors import MatchComputationBusy, MatchStoreError, PreconditionError
from .models import CommutePreference, User
from .rabbitmq import publisher
from .schemas import (
    ComputeMatchesResponse,
    ComputedMatch,
    MatchListing,
    PreferenceResponse,
    ProfileResponse,
    UpdateProfile,
    UpsertPreference,
    WorkplaceConfig,
)
from .security import Identity, get_current_user
from .services import compute_matches, load_preferences, preferences_payload
from .store import list_matches_for_user

router = APIRouter(prefix="/api")


async def get_db():
    async with SessionLocal() as session:
        yield session


def _profile(user: User) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
        home_address=user.home_address,
        home_lat=user.home_lat,
        home_lng=user.home_lng,
    )


@router.get("/config", response_model=WorkplaceConfig)
async def get_config():
    return WorkplaceConfig(
        workplace_name=WORKPLACE_NAME,
        workplace_address=WORKPLACE_ADDRESS,
        work_lat=DEFAULT_MATCH_CONFIG.work_lat,
        work_lng=DEFAULT_MATCH_CONFIG.work_lng,
    )


# ================= PROFILE =================

@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = await db.get(User, user.user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile(profile)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    data: UpdateProfile,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await db.get(User, user.user_id)
    if not profile:
        email = user.email or ""
        profile = User(
            id=user.user_id,
            email=user.email,
            display_name=user.display_name or email.split("@")[0] or user.user_id,
            avatar_url=user.avatar_url,
        )
        db.add(profile)

    # partial update: only fields present in the body are touched
    sent = data.model_fields_set
    if data.display_name:
        profile.display_name = data.display_name
    if "home_address" in sent:
        profile.home_address = data.home_address or None
        # a new address without coordinates makes the old geocode stale
        if "home_lat" not in sent:
            profile.home_lat = None
            profile.home_lng = None
    if "home_lat" in sent or "home_lng" in sent:
        profile.home_lat = data.home_lat
        profile.home_lng = data.home_lng

    await db.commit()

    event = build_event(
        "user.location_updated",
        {
            "user_id": profile.id,
            "latitude": profile.home_lat,
            "longitude": profile.home_lng,
        },
    )
    await publisher.publish("user.location_updated", to_json(event))

    return _profile(profile)


# ================= PREFERENCES =================

@router.get("/preferences", response_model=List[PreferenceResponse])
async def get_preferences(user: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return [preferences_payload(p) for p in await load_preferences(db, user.user_id)]


@router.put("/preferences", response_model=List[PreferenceResponse])
async def upsert_preference(
    data: UpsertPreference,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await db.get(User, user.user_id):
        raise HTTPException(status_code=404, detail="User not found; set your profile first")

    result = await db.execute(
        select(CommutePreference).where(
            CommutePreference.user_id == user.user_id,
            CommutePreference.direction == data.direction,
        )
    )
    pref = result.scalar_one_or_none()

    if pref is None:
        pref = CommutePreference(user_id=user.user_id, direction=data.direction)
        db.add(pref)

    pref.earliest_time = data.earliest_time
    pref.latest_time = data.latest_time
    pref.days_of_week = json.dumps(data.days_of_week)
    pref.role = data.role

    await db.commit()

    event = build_event(
        "preferences.updated",
        {"user_id": user.user_id, "direction": data.direction},
    )
    await publisher.publish("preferences.updated", to_json(event))

    return [preferences_payload(p) for p in await load_preferences(db, user.user_id)]


@router.delete("/preferences/{direction}")
async def delete_preference(
    direction: str,
    user: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await db.execute(
        delete(CommutePreference).where(
            CommutePreference.user_id == user.user_id,
            CommutePreference.direction == direction,
        )
    )
    await db.commit()

    event = build_event(
        "preferences.updated",
        {"user_id": user.user_id, "direction": direction, "deleted": True},
    )
    await publisher.publish("preferences.updated", to_json(event))

    return {"ok": True}


# ================= MATCHES =================

@router.get("/matches", response_model=List[MatchListing])
async def list_matches(user: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        listings = await list_matches_for_user(db, user.user_id)
    except MatchStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    for m in listings:
        m["detour_minutes"] = display_round(m["detour_minutes"])
        m["time_overlap_minutes"] = display_round(m["time_overlap_minutes"])
        m["rank_score"] = display_round(m["rank_score"])
    return listings


@router.post("/matches/compute", response_model=ComputeMatchesResponse)
async def compute(user: Identity = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        outcome = await compute_matches(db, user.user_id)
    except PreconditionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MatchComputationBusy as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MatchStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    matches = []
    for row in outcome.rows:
        scored = outcome.scored[row.id]
        matches.append(
            ComputedMatch(
                id=row.id,
                partner_id=row.user_b_id,
                partner_name=outcome.partner_names.get(row.user_b_id),
                direction=row.direction,
                detour_minutes=display_round(row.detour_minutes),
                time_overlap_minutes=display_round(row.time_overlap_minutes),
                common_days=sorted(scored.common_days),
                overlap_start=format_hhmm(scored.overlap_start),
                overlap_end=format_hhmm(scored.overlap_end),
                rank_score=display_round(row.rank_score),
            )
        )
    return ComputeMatchesResponse(computed=len(matches), matches=matches)
