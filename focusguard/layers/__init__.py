# Engine layers
from .stats_accumulator import accumulate, compute_valid_elapsed
from .badge_evaluator import BADGE_CATALOG, check_badges, get_badge
from .scoreboard import calculate_daily_score, get_leaderboard, build_stats_overview
from .audio_arbitrator import AudioFeedbackLayer, arbitrate
from .log_buffer import LogBuffer

__all__ = [
    "accumulate",
    "compute_valid_elapsed",
    "BADGE_CATALOG",
    "check_badges",
    "get_badge",
    "calculate_daily_score",
    "get_leaderboard",
    "build_stats_overview",
    "AudioFeedbackLayer",
    "arbitrate",
    "LogBuffer",
]
