"""
Audio sinks that hand intents to someone else for rendering.
"""
from typing import Callable, Optional

from focusguard.services.audio.base import AudioSink
from focusguard.services.logger_service import get_logger
from focusguard.types import AudioAction, AudioIntent
from focusguard.types.domain_events import DomainEvent, DomainEventType


class EventAudioSink(AudioSink):
    """
    Publishes AudioIntent objects as AUDIO_INTENT domain events.

    Connected browser clients render them with their own speech synthesis
    and audio elements.
    """

    def __init__(self, publish: Callable[[DomainEvent], None]):
        self._publish = publish

    def speak(self, text: str, lang: Optional[str] = None, interrupt: bool = True) -> None:
        self._emit(AudioIntent(
            action=AudioAction.SPEAK,
            text=text,
            lang=lang,
            interrupt=interrupt,
        ))

    def play_clip(self, clip: str) -> None:
        self._emit(AudioIntent(action=AudioAction.PLAY_CLIP, clip=clip, interrupt=False))

    def describe(self) -> str:
        return "events"

    def _emit(self, intent: AudioIntent) -> None:
        self._publish(DomainEvent(
            event_type=DomainEventType.AUDIO_INTENT,
            payload=intent,
        ))


class LoggingAudioSink(AudioSink):
    """Writes intents to the system log. Useful for headless runs."""

    def __init__(self):
        self._logger = get_logger()

    def speak(self, text: str, lang: Optional[str] = None, interrupt: bool = True) -> None:
        self._logger.system(
            "audio_speak",
            {"text": text, "lang": lang, "interrupt": interrupt},
        )

    def play_clip(self, clip: str) -> None:
        self._logger.system("audio_play_clip", {"clip_length": len(clip)})

    def describe(self) -> str:
        return "log"
