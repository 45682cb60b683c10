"""
Audio Feedback Arbitrator

Input: status + message of a cycle, audio settings, optional custom clip
Output: which channel vocalizes the message (none / custom clip / speech)

`arbitrate` is the pure decision. `AudioFeedbackLayer` keeps the mutable
audio settings, owns the random source for the encouragement gate and
hands decisions to an AudioSink for rendering.

Rules:
- Audio disabled: never any output.
- DISTRACTED / ABSENT: the custom clip wins when enabled and present,
  otherwise the message is spoken.
- FOCUSED: spoken only on a fraction of cycles to avoid over-praising.
- IDLE / ERROR: silent.
- Badge unlocks get their own announcement, independent of the gate.
"""
import random
from typing import Callable, Optional

from focusguard.services.audio.base import AudioSink
from focusguard.services.logger_service import LoggerService, get_logger
from focusguard.types import (
    AudioChannel,
    AudioConfig,
    AudioDecision,
    Badge,
    FocusStatus,
)

RandomSource = Callable[[], float]

DEFAULT_FOCUSED_VOICE_PROBABILITY = 0.15


def arbitrate(
    status: FocusStatus,
    message: str,
    audio_enabled: bool,
    use_custom_audio: bool,
    custom_clip: Optional[str],
    random_source: RandomSource,
    focused_voice_probability: float = DEFAULT_FOCUSED_VOICE_PROBABILITY,
) -> AudioDecision:
    """
    Decide how (and whether) to vocalize a classification.

    The random source is drawn only for FOCUSED statuses, so a scripted
    source stays aligned with the FOCUSED cycles of a test.
    """
    if not audio_enabled:
        return AudioDecision.silent()

    if status.is_negative():
        if use_custom_audio and custom_clip:
            return AudioDecision(channel=AudioChannel.CUSTOM_CLIP, clip=custom_clip)
        return AudioDecision(channel=AudioChannel.SYNTHESIZED, text=message)

    if status == FocusStatus.FOCUSED:
        if random_source() > 1.0 - focused_voice_probability:
            return AudioDecision(channel=AudioChannel.SYNTHESIZED, text=message)
        return AudioDecision.silent()

    return AudioDecision.silent()


class AudioFeedbackLayer:
    """
    Applies the arbitration policy and renders the outcome.
    """

    def __init__(
        self,
        config: Optional[AudioConfig] = None,
        sink: Optional[AudioSink] = None,
        random_source: Optional[RandomSource] = None,
        logger: Optional[LoggerService] = None,
    ):
        """
        Initialize the audio feedback layer.

        Args:
            config: Audio configuration.
            sink: Renderer for speech and clips. Without one nothing is heard.
            random_source: Uniform [0, 1) source for the encouragement gate.
            logger: Logger service (defaults to the global one).
        """
        self._config = config or AudioConfig()
        self._sink = sink
        self._random_source = random_source or random.Random(self._config.random_seed).random
        self._logger = logger or get_logger()
        self._custom_clip: Optional[str] = None

    def configure(self, config: AudioConfig) -> None:
        self._config = config

    def set_sink(self, sink: Optional[AudioSink]) -> None:
        self._sink = sink

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def set_enabled(self, enabled: bool) -> None:
        self._config.enabled = enabled

    @property
    def use_custom_audio(self) -> bool:
        return self._config.use_custom_audio

    def set_use_custom_audio(self, use_custom_audio: bool) -> None:
        self._config.use_custom_audio = use_custom_audio

    @property
    def custom_clip(self) -> Optional[str]:
        return self._custom_clip

    def set_custom_clip(self, clip: Optional[str]) -> None:
        self._custom_clip = clip or None

    def decide(self, status: FocusStatus, message: str) -> AudioDecision:
        return arbitrate(
            status=status,
            message=message,
            audio_enabled=self._config.enabled,
            use_custom_audio=self._config.use_custom_audio,
            custom_clip=self._custom_clip,
            random_source=self._random_source,
            focused_voice_probability=self._config.focused_voice_probability,
        )

    def handle_status(self, status: FocusStatus, message: str) -> AudioDecision:
        """Decide for one classification and render the decision."""
        decision = self.decide(status, message)
        self.render(decision)
        return decision

    def render(self, decision: AudioDecision) -> bool:
        """
        Hand a decision to the sink.

        Returns:
            True if something was sent to the sink without error.
        """
        if decision.channel == AudioChannel.NONE or self._sink is None:
            return False

        try:
            if decision.channel == AudioChannel.CUSTOM_CLIP:
                self._sink.play_clip(decision.clip or "")
            else:
                # New speech supersedes whatever is being said
                self._sink.speak(decision.text or "", lang=self._config.speech_lang, interrupt=True)
        except Exception as e:
            self._logger.system(
                "audio_render_failed",
                {"channel": decision.channel.value, "error": str(e)},
                level="ERROR",
            )
            return False
        return True

    def announce_badge(self, badge: Badge) -> bool:
        """
        Speak the unlock announcement. Queued behind the status utterance.

        Returns:
            True if the announcement was sent to the sink.
        """
        if not self._config.enabled or self._sink is None:
            return False

        text = self._config.badge_announcement_template.format(name=badge.name)
        try:
            self._sink.speak(text, lang=self._config.speech_lang, interrupt=False)
        except Exception as e:
            self._logger.system(
                "badge_announcement_failed",
                {"badge_id": badge.id, "error": str(e)},
                level="ERROR",
            )
            return False
        return True
