"""
Badge Evaluator

Decides, after each stats update, whether one new badge has become
eligible. The catalog is ordered by priority; when several badges become
eligible at once they are awarded one per cycle in catalog order.

The evaluator never mutates the earned set. Recording the award and
celebrating it (toast, spoken announcement) is the caller's job.
"""
from typing import AbstractSet, Optional, Sequence

from focusguard.types import Badge, UserStats


BADGE_CATALOG: Sequence[Badge] = (
    Badge(
        id="first_minute",
        name="Getting Started",
        icon="🌱",
        description="Focus for your first full minute",
        is_eligible=lambda s: s.total_focus_time_seconds >= 60,
    ),
    Badge(
        id="focus_10",
        name="Focus Apprentice",
        icon="📘",
        description="10 minutes of focused work",
        is_eligible=lambda s: s.total_focus_time_seconds >= 600,
    ),
    Badge(
        id="streak_5",
        name="On Fire",
        icon="🔥",
        description="Stay focused for 5 minutes in a row",
        is_eligible=lambda s: s.longest_streak_seconds >= 300,
    ),
    Badge(
        id="steady_mind",
        name="Steady Mind",
        icon="🧘",
        description="15 focused minutes with at most 2 distractions",
        is_eligible=lambda s: s.total_focus_time_seconds >= 900 and s.distraction_count <= 2,
    ),
    Badge(
        id="streak_15",
        name="Iron Focus",
        icon="🛡️",
        description="Stay focused for 15 minutes in a row",
        is_eligible=lambda s: s.longest_streak_seconds >= 900,
    ),
    Badge(
        id="focus_30",
        name="Focus Master",
        icon="🏆",
        description="30 minutes of focused work",
        is_eligible=lambda s: s.total_focus_time_seconds >= 1800,
    ),
    Badge(
        id="marathon",
        name="Homework Marathon",
        icon="🏃",
        description="A full hour of focused work",
        is_eligible=lambda s: s.total_focus_time_seconds >= 3600,
    ),
)

_CATALOG_BY_ID = {badge.id: badge for badge in BADGE_CATALOG}


def check_badges(
    stats: UserStats,
    earned: AbstractSet[str],
    catalog: Sequence[Badge] = BADGE_CATALOG,
) -> Optional[Badge]:
    """
    Return the first catalog badge not yet earned whose predicate holds.

    Args:
        stats: Current stats.
        earned: Ids already awarded.
        catalog: Ordered badge catalog.

    Returns:
        The newly eligible badge, or None.
    """
    for badge in catalog:
        if badge.id in earned:
            continue
        if badge.is_eligible(stats):
            return badge
    return None


def get_badge(badge_id: str) -> Optional[Badge]:
    """Look up a catalog badge by id."""
    return _CATALOG_BY_ID.get(badge_id)
