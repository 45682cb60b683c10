"""
OpenCV Frame Source

Captures stills from a local webcam. Uses lazy imports to avoid a hard
dependency on OpenCV (pip install focusguard[camera]).
"""
from typing import Any, Optional

from focusguard.services.frame_capture.base import FrameSource
from focusguard.services.logger_service import get_logger


class OpenCVFrameSource(FrameSource):
    """
    Webcam frame source backed by cv2.VideoCapture.
    """

    blocking = True

    def __init__(
        self,
        camera_index: int = 0,
        width: int = 640,
        height: int = 480,
        jpeg_quality: int = 60,
    ):
        """
        Args:
            camera_index: OpenCV device index.
            width: Requested capture width.
            height: Requested capture height.
            jpeg_quality: JPEG quality 0-100 (lower saves bandwidth).
        """
        self._camera_index = camera_index
        self._width = width
        self._height = height
        self._jpeg_quality = jpeg_quality
        self._cap: Optional[Any] = None
        self._cv2: Optional[Any] = None
        self._logger = get_logger()

    def open(self) -> bool:
        if self._cap is not None:
            return True

        try:
            import cv2
        except ImportError:
            self._logger.system(
                "opencv_not_installed",
                {"hint": "pip install focusguard[camera]"},
                level="ERROR",
            )
            return False

        cap = cv2.VideoCapture(self._camera_index)
        if not cap.isOpened():
            self._logger.system(
                "camera_open_failed",
                {"camera_index": self._camera_index},
                level="WARNING",
            )
            cap.release()
            return False

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)

        self._cv2 = cv2
        self._cap = cap
        self._logger.system(
            "camera_opened",
            {"camera_index": self._camera_index, "width": self._width, "height": self._height},
        )
        return True

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            self._logger.system("camera_closed", {"camera_index": self._camera_index})

    def describe(self) -> str:
        return f"opencv:{self._camera_index}"

    def capture_frame(self) -> Optional[bytes]:
        if self._cap is None and not self.open():
            return None

        ok, frame = self._cap.read()
        if not ok or frame is None:
            self._logger.system(
                "camera_read_failed",
                {"camera_index": self._camera_index},
                level="WARNING",
            )
            return None

        ok, buffer = self._cv2.imencode(
            ".jpg",
            frame,
            [int(self._cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality],
        )
        if not ok:
            self._logger.system("frame_encode_failed", {}, level="WARNING")
            return None
        return buffer.tobytes()
