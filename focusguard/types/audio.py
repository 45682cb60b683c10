"""
Type definitions for audio feedback decisions and rendering intents.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AudioChannel(Enum):
    """Which channel, if any, vocalizes a classification message."""
    NONE = "none"
    CUSTOM_CLIP = "custom_clip"
    SYNTHESIZED = "synthesized"


@dataclass(frozen=True)
class AudioDecision:
    """Output of the audio arbitrator for one status update."""
    channel: AudioChannel
    text: Optional[str] = None  # Only set for SYNTHESIZED
    clip: Optional[str] = None  # Only set for CUSTOM_CLIP

    @classmethod
    def silent(cls) -> "AudioDecision":
        return cls(channel=AudioChannel.NONE)


class AudioAction(Enum):
    SPEAK = "speak"
    PLAY_CLIP = "play_clip"


@dataclass(frozen=True)
class AudioIntent:
    """
    Request for the presentation side to render sound.

    `interrupt` asks the renderer to cancel any utterance currently being
    spoken before starting this one; when False the utterance is queued.
    """
    action: AudioAction
    text: Optional[str] = None
    lang: Optional[str] = None
    clip: Optional[str] = None
    interrupt: bool = True
