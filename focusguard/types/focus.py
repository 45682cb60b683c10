"""
Type definitions for classification results and the activity log.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FocusStatus(Enum):
    """Status of the monitored student as seen by the engine."""
    IDLE = "IDLE"  # Engine at rest (not monitoring)
    FOCUSED = "FOCUSED"
    DISTRACTED = "DISTRACTED"
    ABSENT = "ABSENT"
    ERROR = "ERROR"  # Classification attempt failed

    def is_negative(self) -> bool:
        """True for statuses that break a streak."""
        return self in (FocusStatus.DISTRACTED, FocusStatus.ABSENT)


# Statuses the external classifier is allowed to return
CLASSIFIABLE_STATUSES = (
    FocusStatus.FOCUSED,
    FocusStatus.DISTRACTED,
    FocusStatus.ABSENT,
)


@dataclass(frozen=True)
class ClassificationResult:
    """
    Verdict of the visual classifier for a single frame.
    Produced once per sampling cycle and consumed immediately.
    """
    status: FocusStatus
    message: str
    confidence: float  # 0.0 to 1.0

    @classmethod
    def failed(cls, message: str = "Analysis failed") -> "ClassificationResult":
        """Local stand-in for a classifier call that did not succeed."""
        return cls(status=FocusStatus.ERROR, message=message, confidence=0.0)


@dataclass(frozen=True)
class LogEntry:
    """A single entry in the activity log shown to the user."""
    id: str
    timestamp: datetime
    status: FocusStatus
    message: str
