from typing import Iterable, List

from .models import MatchCandidatePair, ScoredMatch


def rank_score(detour_minutes: float, overlap_minutes: float, w_detour: float, w_overlap: float) -> float:
    # lower is better: little detour, wide shared window
    return detour_minutes * w_detour - overlap_minutes * w_overlap


def rank(
    requester_id: str,
    pairs: Iterable[MatchCandidatePair],
    w_detour: float,
    w_overlap: float,
) -> List[ScoredMatch]:
    """
    Score every surviving pair and sort ascending by score.
    Ties keep the order the pairs were produced in.
    """
    scored = [
        ScoredMatch(
            requester_id=requester_id,
            partner_id=p.candidate.user_id,
            direction=p.requester_preference.direction,
            detour_minutes=p.detour_minutes,
            overlap_minutes=p.overlap.minutes,
            common_days=p.overlap.common_days,
            rank_score=rank_score(p.detour_minutes, p.overlap.minutes, w_detour, w_overlap),
            overlap_start=p.overlap.start,
            overlap_end=p.overlap.end,
        )
        for p in pairs
    ]
    scored.sort(key=lambda m: m.rank_score)
    return scored


def display_round(value: float) -> float:
    return round(value, 1)
