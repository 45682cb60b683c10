"""
Stats Accumulator

Input: previous UserStats, the status of the latest cycle, elapsed seconds
Output: next UserStats

Pure transition function. The Sampling Scheduler owns the stats aggregate
and the checkpoint clock; this layer only reads what it is given and
returns a new value, which keeps it unit-testable without any timing.
"""
import math

from focusguard.types import FocusStatus, UserStats

DEFAULT_GAP_THRESHOLD_SECONDS = 20.0
DEFAULT_MAX_ELAPSED_SECONDS = 10.0


def compute_valid_elapsed(
    elapsed_seconds: float,
    gap_threshold_seconds: float = DEFAULT_GAP_THRESHOLD_SECONDS,
    max_elapsed_seconds: float = DEFAULT_MAX_ELAPSED_SECONDS,
) -> float:
    """
    Bound the time credited to a single cycle.

    Gaps larger than the threshold (process suspended, laptop lid closed)
    count as zero; anything else is capped at max_elapsed_seconds.
    """
    if elapsed_seconds > gap_threshold_seconds:
        return 0.0
    return max(0.0, min(elapsed_seconds, max_elapsed_seconds))


def accumulate(
    stats: UserStats,
    status: FocusStatus,
    elapsed_seconds: float,
    gap_threshold_seconds: float = DEFAULT_GAP_THRESHOLD_SECONDS,
    max_elapsed_seconds: float = DEFAULT_MAX_ELAPSED_SECONDS,
) -> UserStats:
    """
    Apply one cycle's status to the stats.

    Args:
        stats: Stats before this cycle.
        status: Status reported for this cycle.
        elapsed_seconds: Time since the previous checkpoint.
        gap_threshold_seconds: Gaps above this are credited as zero.
        max_elapsed_seconds: Upper bound credited per cycle.

    Returns:
        The next stats value. Badges are carried over untouched.
    """
    if status == FocusStatus.FOCUSED:
        credited = math.floor(
            compute_valid_elapsed(elapsed_seconds, gap_threshold_seconds, max_elapsed_seconds)
        )
        streak = stats.current_streak_seconds + credited
        return UserStats(
            total_focus_time_seconds=stats.total_focus_time_seconds + credited,
            current_streak_seconds=streak,
            longest_streak_seconds=max(stats.longest_streak_seconds, streak),
            distraction_count=stats.distraction_count,
            badges=stats.badges,
        )

    if status.is_negative():
        return UserStats(
            total_focus_time_seconds=stats.total_focus_time_seconds,
            current_streak_seconds=0,
            longest_streak_seconds=stats.longest_streak_seconds,
            distraction_count=stats.distraction_count + 1,
            badges=stats.badges,
        )

    # IDLE and ERROR are neutral ticks
    return stats
