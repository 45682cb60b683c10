"""
Audio Sink Service

Provides the rendering side of audio feedback.
"""
from typing import Callable

from focusguard.services.audio.base import AudioSink
from focusguard.services.audio.event_sink import EventAudioSink, LoggingAudioSink
from focusguard.types.config import AudioConfig, AudioSinkMode
from focusguard.types.domain_events import DomainEvent


def create_audio_sink(
    config: AudioConfig,
    publish: Callable[[DomainEvent], None],
) -> AudioSink:
    """
    Create an audio sink for the configured mode.

    Args:
        config: Audio configuration.
        publish: Domain event publisher used by the events sink.
    """
    if config.sink == AudioSinkMode.EVENTS:
        return EventAudioSink(publish)
    if config.sink == AudioSinkMode.LOG:
        return LoggingAudioSink()
    raise ValueError(f"Invalid audio sink mode: {config.sink}")


__all__ = [
    "AudioSink",
    "EventAudioSink",
    "LoggingAudioSink",
    "create_audio_sink",
]
