"""
Base Frame Source Protocol

Defines the interface that all frame sources must implement. Capture is
synchronous and nullable: None means "no frame right now" (camera not
ready, permission denied, nothing pushed yet) and is not an error.
"""
from abc import ABC, abstractmethod
from typing import Optional


class FrameSource(ABC):
    """
    Abstract base class for frame sources.
    """

    # Sources whose capture_frame() waits on a device are called off the event loop
    blocking: bool = False

    @abstractmethod
    def open(self) -> bool:
        """
        Acquire the underlying device, if any.

        Returns:
            True if the source can produce frames.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying device. Safe to call repeatedly."""
        pass

    @abstractmethod
    def capture_frame(self) -> Optional[bytes]:
        """
        Grab one still image.

        Returns:
            JPEG-encoded bytes, or None if no frame is available.
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """Short identifier for status reporting."""
        pass
