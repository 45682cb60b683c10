"""
Frame Capture Service

Provides frame source interfaces and implementations.
"""
from focusguard.services.frame_capture.base import FrameSource
from focusguard.services.frame_capture.pushed_source import PushedFrameSource
from focusguard.services.frame_capture.opencv_source import OpenCVFrameSource
from focusguard.services.frame_capture.simulated_source import SimulatedFrameSource
from focusguard.services.frame_capture.factory import create_frame_source

__all__ = [
    "FrameSource",
    "PushedFrameSource",
    "OpenCVFrameSource",
    "SimulatedFrameSource",
    "create_frame_source",
]
