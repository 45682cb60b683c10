"""
Development Visual Classifier Adapter

Scripted stand-in for development without network access or credentials.
"""
from itertools import cycle
from typing import Iterable, Optional

from focusguard.services.classifier.base import ClassifierError, VisualClassifier
from focusguard.types import ClassificationResult, FocusStatus

CANNED_MESSAGES = {
    FocusStatus.FOCUSED: "很棒，继续保持",
    FocusStatus.DISTRACTED: "请专心写作业哦",
    FocusStatus.ABSENT: "人去哪里了",
}

DEFAULT_SCRIPT = (
    FocusStatus.FOCUSED,
    FocusStatus.FOCUSED,
    FocusStatus.FOCUSED,
    FocusStatus.DISTRACTED,
    FocusStatus.FOCUSED,
    FocusStatus.FOCUSED,
    FocusStatus.ABSENT,
)


class DevelopmentVisualClassifier(VisualClassifier):
    """
    Development mode classifier that makes no API calls.

    Walks through a status script in a loop and answers with the canned
    message for each status.
    """

    def __init__(self, script: Optional[Iterable[FocusStatus]] = None):
        statuses = list(script) if script is not None else list(DEFAULT_SCRIPT)
        for status in statuses:
            if status not in CANNED_MESSAGES:
                raise ValueError(f"Status cannot be scripted: {status.value}")
        if not statuses:
            raise ValueError("script must not be empty")
        self._script = cycle(statuses)

    def is_configured(self) -> bool:
        return True

    def get_model_name(self) -> str:
        return "development-mode"

    async def classify(self, image: bytes) -> ClassificationResult:
        if not image:
            raise ClassifierError("Empty image")
        status = next(self._script)
        return ClassificationResult(
            status=status,
            message=CANNED_MESSAGES[status],
            confidence=1.0,
        )
