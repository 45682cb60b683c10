"""
Frame Source Factory

Creates frame sources based on system configuration.
"""
from focusguard.services.frame_capture.base import FrameSource
from focusguard.services.frame_capture.opencv_source import OpenCVFrameSource
from focusguard.services.frame_capture.pushed_source import PushedFrameSource
from focusguard.services.frame_capture.simulated_source import SimulatedFrameSource
from focusguard.services.logger_service import get_logger
from focusguard.types.config import FrameCaptureConfig, FrameCaptureMode


def create_frame_source(config: FrameCaptureConfig) -> FrameSource:
    """
    Create a frame source based on configuration.

    Args:
        config: Frame capture configuration.

    Returns:
        FrameSource instance (not yet opened).

    Raises:
        ValueError: If the capture mode is invalid.
    """
    logger = get_logger()

    logger.system(
        "frame_source_factory",
        {"mode": getattr(config.mode, "value", config.mode)},
        level="DEBUG",
    )

    if config.mode == FrameCaptureMode.PUSHED:
        source: FrameSource = PushedFrameSource(
            max_frame_age_seconds=config.max_frame_age_seconds,
        )
    elif config.mode == FrameCaptureMode.OPENCV:
        source = OpenCVFrameSource(
            camera_index=config.camera_index,
            width=config.width,
            height=config.height,
            jpeg_quality=config.jpeg_quality,
        )
    elif config.mode == FrameCaptureMode.SIMULATED:
        source = SimulatedFrameSource(image_path=config.simulated_image_path)
    else:
        logger.system(
            "frame_source_invalid_mode",
            {"mode": str(config.mode)},
            level="ERROR",
        )
        raise ValueError(
            f"Invalid frame capture mode: {config.mode}. "
            f"Valid modes are: pushed, opencv, simulated"
        )

    logger.system("frame_source_created", {"type": source.describe()})
    return source
