"""
Type definitions for stats, badges and the locally synthesized leaderboard.
"""
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional


@dataclass(frozen=True)
class UserStats:
    """
    Running focus statistics for the current monitoring session.

    Instances are immutable; the stats accumulator returns a new value
    for every transition.
    """
    total_focus_time_seconds: int = 0
    current_streak_seconds: int = 0
    longest_streak_seconds: int = 0
    distraction_count: int = 0
    badges: FrozenSet[str] = field(default_factory=frozenset)

    def with_badge(self, badge_id: str) -> "UserStats":
        """Return a copy with one more earned badge."""
        return UserStats(
            total_focus_time_seconds=self.total_focus_time_seconds,
            current_streak_seconds=self.current_streak_seconds,
            longest_streak_seconds=self.longest_streak_seconds,
            distraction_count=self.distraction_count,
            badges=self.badges | {badge_id},
        )


# Eligibility predicate over the current stats
BadgePredicate = Callable[[UserStats], bool]


@dataclass(frozen=True)
class Badge:
    """Static catalog entry for an unlockable achievement."""
    id: str
    name: str
    icon: str
    description: str
    is_eligible: BadgePredicate = field(compare=False, repr=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
        }


@dataclass(frozen=True)
class LeaderboardEntry:
    """Display row of the local leaderboard."""
    id: str
    name: str
    avatar: str
    score: int
    is_current_user: bool = False


@dataclass
class BadgeProgress:
    """Catalog badge plus whether the user has unlocked it."""
    badge: Badge
    unlocked: bool = False

    def to_dict(self) -> dict:
        return {**self.badge.to_dict(), "unlocked": self.unlocked}


@dataclass
class StatsOverview:
    """Everything the achievements view renders."""
    score: int
    focus_minutes: int
    distraction_count: int
    longest_streak_seconds: int
    badges: List[BadgeProgress] = field(default_factory=list)
    leaderboard: List[LeaderboardEntry] = field(default_factory=list)
    newest_badge: Optional[Badge] = None

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "focus_minutes": self.focus_minutes,
            "distraction_count": self.distraction_count,
            "longest_streak_seconds": self.longest_streak_seconds,
            "badges": [b.to_dict() for b in self.badges],
            "leaderboard": [
                {
                    "id": e.id,
                    "name": e.name,
                    "avatar": e.avatar,
                    "score": e.score,
                    "is_current_user": e.is_current_user,
                }
                for e in self.leaderboard
            ],
            "newest_badge": self.newest_badge.to_dict() if self.newest_badge else None,
        }
