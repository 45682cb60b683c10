"""
Base Audio Sink Protocol

Defines the interface for rendering speech and recorded clips. The engine
only decides what should be heard; a sink turns that decision into sound
(or into a message for a client that can make sound).
"""
from abc import ABC, abstractmethod
from typing import Optional


class AudioSink(ABC):
    """
    Abstract base class for audio sinks.

    Implementations may raise on rendering failure; callers log and carry on.
    """

    @abstractmethod
    def speak(self, text: str, lang: Optional[str] = None, interrupt: bool = True) -> None:
        """
        Synthesize speech.

        Args:
            text: Utterance text.
            lang: BCP-47 language tag for the voice (e.g. "zh-CN").
            interrupt: Cancel any utterance currently being spoken first.
                When False the utterance queues behind the current one.
        """
        pass

    @abstractmethod
    def play_clip(self, clip: str) -> None:
        """
        Play a previously recorded clip.

        Args:
            clip: Serialized clip (data URL).
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """Short identifier for status reporting."""
        pass
