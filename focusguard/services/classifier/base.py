"""
Base Visual Classifier Adapter Protocol

Defines the interface that all visual classifier adapters must implement.
The engine treats classification as an opaque asynchronous call that may
fail; adapters raise ClassifierError for every failure mode.
"""
import base64
import json
import re
from abc import ABC, abstractmethod
from typing import Any

from focusguard.types import CLASSIFIABLE_STATUSES, ClassificationResult, FocusStatus


class ClassifierError(Exception):
    """Classification could not produce a usable result."""


_DATA_URL_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg);base64,")


def strip_data_url_prefix(encoded: str) -> str:
    """Remove a `data:image/...;base64,` prefix if present."""
    return _DATA_URL_PREFIX.sub("", encoded, count=1)


def to_data_url(image: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode raw image bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


def parse_classification(content: str) -> ClassificationResult:
    """
    Parse and validate a classifier JSON payload.

    Expected shape: {"status": "FOCUSED|DISTRACTED|ABSENT", "message": str,
    "confidence": number}. Confidence is clamped to [0, 1].

    Raises:
        ClassifierError: On empty, malformed or out-of-range content.
    """
    if not content or not content.strip():
        raise ClassifierError("No response from classifier")

    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError as e:
        raise ClassifierError(f"Malformed classifier response: {e}") from e

    if not isinstance(data, dict):
        raise ClassifierError("Classifier response must be a JSON object")

    raw_status = str(data.get("status", "")).strip().upper()
    try:
        status = FocusStatus(raw_status)
    except ValueError:
        raise ClassifierError(f"Unknown status: {raw_status!r}") from None
    if status not in CLASSIFIABLE_STATUSES:
        raise ClassifierError(f"Status not allowed from classifier: {status.value}")

    message = data.get("message")
    if not isinstance(message, str):
        raise ClassifierError("Classifier response is missing a message")

    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError):
        raise ClassifierError("Confidence must be a number") from None
    confidence = max(0.0, min(1.0, confidence))

    return ClassificationResult(status=status, message=message.strip(), confidence=confidence)


class VisualClassifier(ABC):
    """
    Abstract base class for visual classifier adapters.

    All adapters must implement this interface so the scheduler can work
    with any backend (hosted model, scripted development stand-in).
    """

    @abstractmethod
    async def classify(self, image: bytes) -> ClassificationResult:
        """
        Classify a single encoded still image.

        Args:
            image: Encoded image bytes (JPEG).

        Returns:
            ClassificationResult with status FOCUSED, DISTRACTED or ABSENT.

        Raises:
            ClassifierError: If the image could not be classified.
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if the classifier has everything it needs (credentials etc.).
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """
        Return the model name being used.
        """
        pass
