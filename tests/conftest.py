"""Shared fixtures for the FocusGuard test suite.

Provides deterministic stand-ins for every external collaborator of the
sampling scheduler: a manual clock, a scripted classifier, a frame source
that can be switched between "ready" and "not ready", an audio sink that
records what it was asked to say, and a domain event collector.
"""

# pylint: disable=redefined-outer-name

import asyncio
from typing import Any, Iterable, List, Optional, Tuple, Union

import pytest

from focusguard.core.sampling_scheduler import SamplingScheduler
from focusguard.services.audio.base import AudioSink
from focusguard.services.classifier.base import VisualClassifier
from focusguard.services.frame_capture.base import FrameSource
from focusguard.services.logger_service import initialize_logger
from focusguard.services.settings_store import SettingsStore
from focusguard.types import ClassificationResult, FocusStatus, SystemConfig
from focusguard.types.domain_events import DomainEvent, DomainEventType

FRAME = b"\xff\xd8\xff\xe0fake-jpeg\xff\xd9"


def focused(message: str = "很棒，继续保持") -> ClassificationResult:
    return ClassificationResult(FocusStatus.FOCUSED, message, 0.9)


def distracted(message: str = "请专心写作业哦") -> ClassificationResult:
    return ClassificationResult(FocusStatus.DISTRACTED, message, 0.8)


def absent(message: str = "人去哪里了") -> ClassificationResult:
    return ClassificationResult(FocusStatus.ABSENT, message, 0.95)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedClassifier(VisualClassifier):
    """Returns (or raises) scripted outcomes in order; the last one repeats.

    With `gated=True` every call waits for `release()` so tests can hold a
    classification in flight.
    """

    def __init__(
        self,
        outcomes: Iterable[Union[ClassificationResult, Exception]],
        gated: bool = False,
    ):
        self._outcomes = list(outcomes)
        self.calls = 0
        self.images: List[bytes] = []
        self.started = asyncio.Event()
        self._gate: Optional[asyncio.Event] = asyncio.Event() if gated else None

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def classify(self, image: bytes) -> ClassificationResult:
        index = min(self.calls, len(self._outcomes) - 1)
        self.calls += 1
        self.images.append(image)
        self.started.set()
        if self._gate is not None:
            await self._gate.wait()
        outcome = self._outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def is_configured(self) -> bool:
        return True

    def get_model_name(self) -> str:
        return "scripted"


class FakeFrameSource(FrameSource):
    """Serves `frame` on every capture; set it to None for "camera not ready"."""

    def __init__(self, frame: Optional[bytes] = FRAME):
        self.frame = frame
        self.opened = False
        self.closed = False

    def open(self) -> bool:
        self.opened = True
        return True

    def close(self) -> None:
        self.closed = True

    def capture_frame(self) -> Optional[bytes]:
        return self.frame

    def describe(self) -> str:
        return "fake"


class RecordingAudioSink(AudioSink):
    """Records speak/play_clip calls as tuples."""

    def __init__(self):
        self.calls: List[Tuple[Any, ...]] = []

    def speak(self, text: str, lang: Optional[str] = None, interrupt: bool = True) -> None:
        self.calls.append(("speak", text, lang, interrupt))

    def play_clip(self, clip: str) -> None:
        self.calls.append(("play_clip", clip))

    def describe(self) -> str:
        return "recording"

    @property
    def spoken(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "speak"]


class FailingAudioSink(AudioSink):
    """Rejects every request, like a browser blocking autoplay."""

    def speak(self, text: str, lang: Optional[str] = None, interrupt: bool = True) -> None:
        raise RuntimeError("playback rejected")

    def play_clip(self, clip: str) -> None:
        raise RuntimeError("playback rejected")

    def describe(self) -> str:
        return "failing"


class EventCollector:
    """Domain event handler that keeps everything it receives."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: DomainEventType) -> List[DomainEvent]:
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture(autouse=True)
def logger():
    """Fresh, quiet global logger for every test."""
    return initialize_logger(session_level="DEBUG", system_level="DEBUG", echo=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def frame_source() -> FakeFrameSource:
    return FakeFrameSource()


@pytest.fixture
def audio_sink() -> RecordingAudioSink:
    return RecordingAudioSink()


@pytest.fixture
def events() -> EventCollector:
    return EventCollector()


@pytest.fixture
def config(tmp_path) -> SystemConfig:
    config = SystemConfig()
    config.controller.settings_path = str(tmp_path / "settings.yaml")
    config.controller.session_log_dir = str(tmp_path / "sessions")
    config.controller.session_id = "test"
    return config


@pytest.fixture
async def make_scheduler(config, clock, frame_source, audio_sink, events):
    """Build an initialized scheduler around a scripted classifier.

    The random source defaults to 0.0, which keeps FOCUSED cycles silent.
    """
    created: List[SamplingScheduler] = []

    async def _make(
        outcomes: Iterable[Union[ClassificationResult, Exception]] = (),
        classifier: Optional[VisualClassifier] = None,
        random_value: float = 0.0,
        sink: Optional[AudioSink] = None,
    ) -> SamplingScheduler:
        scheduler = SamplingScheduler(
            config,
            classifier=classifier or ScriptedClassifier(list(outcomes) or [focused()]),
            frame_source=frame_source,
            audio_sink=sink or audio_sink,
            settings_store=SettingsStore(config.controller.settings_path),
            clock=clock,
            random_source=lambda: random_value,
        )
        scheduler.register_event_handler(events)
        await scheduler.initialize()
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        await scheduler.shutdown()
