from datetime import datetime, timezone
from typing import List, Sequence

from sqlalchemy import case, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .engine.models import ScoredMatch
from .errors import MatchStoreError
from .models import MatchResult, User


def location_hint(address: str | None) -> str | None:
    """
    Coarse area for a partner: the second component of a geocoder-style
    address ("123 Main St, Fitchburg, WI 53711, USA" -> "Fitchburg").
    """
    if not address:
        return None
    parts = [p.strip() for p in address.split(",")]
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


async def replace_matches_for_user(
    db: AsyncSession,
    requester_id: str,
    matches: Sequence[ScoredMatch],
    computed_at: datetime | None = None,
) -> List[MatchResult]:
    """
    Delete every row the requester appears in (either side) and insert the new
    set, committed together. On failure nothing is replaced.
    """
    computed_at = computed_at or datetime.now(timezone.utc)
    rows = [
        MatchResult(
            user_a_id=requester_id,
            user_b_id=m.partner_id,
            direction=m.direction.value,
            detour_minutes=m.detour_minutes,
            time_overlap_minutes=m.overlap_minutes,
            rank_score=m.rank_score,
            computed_at=computed_at,
        )
        for m in matches
    ]

    try:
        await db.execute(
            delete(MatchResult).where(
                or_(MatchResult.user_a_id == requester_id, MatchResult.user_b_id == requester_id)
            )
        )
        db.add_all(rows)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise MatchStoreError(f"Could not store matches for {requester_id}") from e

    return rows


async def list_matches_for_user(db: AsyncSession, user_id: str) -> List[dict]:
    user_a = aliased(User)
    user_b = aliased(User)
    is_a = MatchResult.user_a_id == user_id

    stmt = (
        select(
            MatchResult,
            case((is_a, MatchResult.user_b_id), else_=MatchResult.user_a_id).label("partner_id"),
            case((is_a, user_b.display_name), else_=user_a.display_name).label("partner_name"),
            case((is_a, user_b.avatar_url), else_=user_a.avatar_url).label("partner_avatar"),
            case((is_a, user_b.home_address), else_=user_a.home_address).label("partner_address"),
        )
        .join(user_a, MatchResult.user_a_id == user_a.id)
        .join(user_b, MatchResult.user_b_id == user_b.id)
        .where(or_(MatchResult.user_a_id == user_id, MatchResult.user_b_id == user_id))
        .order_by(MatchResult.rank_score.asc())
    )

    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        raise MatchStoreError(f"Could not load matches for {user_id}") from e

    listings = []
    for match, partner_id, partner_name, partner_avatar, partner_address in result.all():
        listings.append(
            {
                "id": match.id,
                "partner_id": partner_id,
                "partner_name": partner_name,
                "partner_avatar": partner_avatar,
                "partner_area": location_hint(partner_address),
                "direction": match.direction,
                "detour_minutes": match.detour_minutes,
                "time_overlap_minutes": match.time_overlap_minutes,
                "rank_score": match.rank_score,
                "computed_at": match.computed_at,
            }
        )
    return listings
