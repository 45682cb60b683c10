"""
Simulated Frame Source

Stub frame source for development and tests without a camera.
"""
from pathlib import Path
from typing import Optional

from focusguard.services.frame_capture.base import FrameSource
from focusguard.services.logger_service import get_logger

# SOI + APP0 marker + EOI; enough for adapters that never decode the image
PLACEHOLDER_JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


class SimulatedFrameSource(FrameSource):
    """
    Returns the same image on every capture.

    If an image path is configured its bytes are served, otherwise a tiny
    placeholder JPEG.
    """

    def __init__(self, image_path: Optional[str] = None):
        self._image_path = image_path
        self._frame: Optional[bytes] = None
        self._logger = get_logger()

    def open(self) -> bool:
        if self._image_path is None:
            self._frame = PLACEHOLDER_JPEG
            return True

        try:
            self._frame = Path(self._image_path).read_bytes()
        except OSError as e:
            self._logger.system(
                "simulated_image_unreadable",
                {"path": self._image_path, "error": str(e)},
                level="WARNING",
            )
            self._frame = None
            return False
        return True

    def close(self) -> None:
        self._frame = None

    def describe(self) -> str:
        return "simulated"

    def capture_frame(self) -> Optional[bytes]:
        if self._frame is None:
            self.open()
        return self._frame
