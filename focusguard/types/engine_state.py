"""
Observable engine state handed to the presentation layer after every cycle.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .focus import FocusStatus, LogEntry
from .gamification import Badge, UserStats


@dataclass(frozen=True)
class EngineSnapshot:
    """Immutable view of (status, message, stats, new badge, logs)."""
    status: FocusStatus
    message: str
    stats: UserStats
    new_badge: Optional[Badge] = None
    logs: List[LogEntry] = field(default_factory=list)
    is_monitoring: bool = False
    timestamp: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "stats": {
                "total_focus_time_seconds": self.stats.total_focus_time_seconds,
                "current_streak_seconds": self.stats.current_streak_seconds,
                "longest_streak_seconds": self.stats.longest_streak_seconds,
                "distraction_count": self.stats.distraction_count,
                "badges": sorted(self.stats.badges),
            },
            "new_badge": self.new_badge.to_dict() if self.new_badge else None,
            "logs": [
                {
                    "id": entry.id,
                    "timestamp": entry.timestamp.isoformat(),
                    "status": entry.status.value,
                    "message": entry.message,
                }
                for entry in self.logs
            ],
            "is_monitoring": self.is_monitoring,
            "timestamp": self.timestamp,
        }
