"""
Scoreboard

Daily focus score and the locally synthesized leaderboard shown on the
achievements view. Nothing here talks to a server; the peer roster is
fixed display data.
"""
from typing import List, Optional, Sequence, Tuple

from focusguard.layers.badge_evaluator import BADGE_CATALOG
from focusguard.types import Badge, BadgeProgress, LeaderboardEntry, StatsOverview, UserStats

MAX_SCORE = 100
FOCUS_POINTS_PER_MINUTE = 2
FOCUS_POINTS_CAP = 80
STREAK_POINTS_PER_MINUTE = 2
STREAK_POINTS_CAP = 20
DISTRACTION_PENALTY = 3

CURRENT_USER_ID = "me"

# (id, name, avatar, score)
PEER_ROSTER: Sequence[Tuple[str, str, str, int]] = (
    ("peer-1", "Xiao Ming", "🐼", 86),
    ("peer-2", "Xiao Hong", "🦊", 72),
    ("peer-3", "Xiao Gang", "🐯", 58),
    ("peer-4", "Xiao Mei", "🐰", 41),
)


def calculate_daily_score(stats: UserStats) -> int:
    """
    Score the session on a 0-100 scale.

    Full focused minutes and the longest streak earn points (each capped),
    every distraction costs a fixed penalty.
    """
    focus_points = min(
        FOCUS_POINTS_CAP,
        (stats.total_focus_time_seconds // 60) * FOCUS_POINTS_PER_MINUTE,
    )
    streak_points = min(
        STREAK_POINTS_CAP,
        (stats.longest_streak_seconds // 60) * STREAK_POINTS_PER_MINUTE,
    )
    penalty = stats.distraction_count * DISTRACTION_PENALTY
    return max(0, min(MAX_SCORE, focus_points + streak_points - penalty))


def get_leaderboard(
    current_score: int,
    current_user_name: str = "Me",
    current_user_avatar: str = "⭐",
) -> List[LeaderboardEntry]:
    """
    Merge the current user into the peer roster, best score first.
    Ties go to the current user.
    """
    entries = [
        LeaderboardEntry(id=peer_id, name=name, avatar=avatar, score=score)
        for peer_id, name, avatar, score in PEER_ROSTER
    ]
    entries.append(
        LeaderboardEntry(
            id=CURRENT_USER_ID,
            name=current_user_name,
            avatar=current_user_avatar,
            score=current_score,
            is_current_user=True,
        )
    )
    entries.sort(key=lambda e: (-e.score, not e.is_current_user))
    return entries


def build_stats_overview(
    stats: UserStats,
    newest_badge: Optional[Badge] = None,
    catalog: Sequence[Badge] = BADGE_CATALOG,
) -> StatsOverview:
    """Assemble score, badge progress and leaderboard for display."""
    score = calculate_daily_score(stats)
    return StatsOverview(
        score=score,
        focus_minutes=stats.total_focus_time_seconds // 60,
        distraction_count=stats.distraction_count,
        longest_streak_seconds=stats.longest_streak_seconds,
        badges=[BadgeProgress(badge=b, unlocked=b.id in stats.badges) for b in catalog],
        leaderboard=get_leaderboard(score),
        newest_badge=newest_badge,
    )
