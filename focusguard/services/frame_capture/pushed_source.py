"""
Pushed Frame Source

Holds the most recent frame sent by a client (typically a browser that
owns the camera and pushes JPEG data URLs over the WebSocket).
"""
import base64
import binascii
import time
from typing import Callable, Optional, Union

from focusguard.services.classifier.base import strip_data_url_prefix
from focusguard.services.frame_capture.base import FrameSource


class PushedFrameSource(FrameSource):
    """
    Frame source fed from outside.

    A frame older than `max_frame_age_seconds` is considered stale and
    reported as "not ready", so a client that went away does not keep
    getting its last picture classified.
    """

    def __init__(
        self,
        max_frame_age_seconds: float = 15.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._max_frame_age_seconds = max_frame_age_seconds
        self._clock = clock or time.monotonic
        self._frame: Optional[bytes] = None
        self._received_at: float = 0.0
        self._frames_received: int = 0

    def open(self) -> bool:
        return True

    def close(self) -> None:
        self._frame = None

    def describe(self) -> str:
        return "pushed"

    @property
    def frames_received(self) -> int:
        return self._frames_received

    def push_frame(self, image: Union[str, bytes]) -> None:
        """
        Store a new frame.

        Args:
            image: Raw JPEG bytes, or a base64 string with or without a
                `data:image/...;base64,` prefix.

        Raises:
            ValueError: If a string payload is not valid base64 or is empty.
        """
        if isinstance(image, str):
            try:
                data = base64.b64decode(strip_data_url_prefix(image.strip()), validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"Invalid base64 frame: {e}") from e
        else:
            data = bytes(image)

        if not data:
            raise ValueError("Empty frame")

        self._frame = data
        self._received_at = self._clock()
        self._frames_received += 1

    def capture_frame(self) -> Optional[bytes]:
        if self._frame is None:
            return None
        if self._clock() - self._received_at > self._max_frame_age_seconds:
            return None
        return self._frame
