"""Test the sampling scheduler end to end with scripted collaborators.

Cycles are driven directly through `run_cycle()` with a manual clock, so
elapsed-time accounting is exact. A few tests go through `start()` to
check the immediate first cycle and the lifecycle events.
"""

# pylint: disable=protected-access
# pylint: disable=redefined-outer-name

import asyncio
import threading

import pytest
import yaml

from focusguard.core.sampling_scheduler import SamplingScheduler, next_tick_deadline
from focusguard.services.classifier import ClassifierError
from focusguard.types import FocusStatus, UserStats
from focusguard.types.domain_events import DomainEventType
from focusguard.types.messages import SystemStatus
from tests.conftest import (
    FailingAudioSink,
    FakeFrameSource,
    ScriptedClassifier,
    absent,
    distracted,
    focused,
)

CLIP = "data:audio/webm;base64,GkXfo0AgQoaBAUL3gQFC8oEEQvOBCEKChHdlYm0="


async def run_cycles(scheduler, clock, count, spacing=5.0):
    snapshots = []
    for _ in range(count):
        clock.advance(spacing)
        snapshots.append(await scheduler.run_cycle())
    return snapshots


class TestScenarios:
    """Reference scenarios at 5 s spacing."""

    async def test_three_focused_cycles(self, make_scheduler, clock):
        """Scenario A: three FOCUSED cycles accumulate 15 s."""
        scheduler = await make_scheduler([focused()])

        await run_cycles(scheduler, clock, 3)

        assert scheduler.get_user_stats() == UserStats(
            total_focus_time_seconds=15,
            current_streak_seconds=15,
            longest_streak_seconds=15,
            distraction_count=0,
        )

    async def test_focused_focused_distracted(self, make_scheduler, clock):
        """Scenario B: a distraction ends a 10 s streak."""
        scheduler = await make_scheduler([focused(), focused(), distracted()])

        snapshots = await run_cycles(scheduler, clock, 3)

        stats = scheduler.get_user_stats()
        assert stats.total_focus_time_seconds == 10
        assert stats.longest_streak_seconds == 10
        assert stats.current_streak_seconds == 0
        assert stats.distraction_count == 1
        assert snapshots[-1].status == FocusStatus.DISTRACTED
        assert snapshots[-1].message == "请专心写作业哦"

    async def test_classifier_failure(self, make_scheduler, clock, audio_sink, logger):
        """Scenario C: a failing classifier yields a neutral ERROR cycle."""
        scheduler = await make_scheduler(
            [ClassifierError("service unavailable")],
            random_value=0.99,
        )

        snapshot = (await run_cycles(scheduler, clock, 1))[0]

        assert snapshot.status == FocusStatus.ERROR
        assert snapshot.message == "Analysis failed"
        assert snapshot.logs == []
        assert snapshot.new_badge is None
        assert scheduler.get_user_stats() == UserStats()
        assert audio_sink.calls == []
        assert scheduler.get_statistics()["classifier_failures"] == 1
        failures = logger.get_system_logs(event_type="classifier_failure", level="ERROR")
        assert failures[0].data["error"] == "service unavailable"

    async def test_error_cycle_skips_badge_evaluation(self, make_scheduler, clock, events):
        """An ERROR cycle never awards a badge, even when one is eligible."""
        scheduler = await make_scheduler([RuntimeError("boom"), focused()])
        scheduler._user_stats = UserStats(total_focus_time_seconds=120, current_streak_seconds=120,
                                          longest_streak_seconds=120)

        await run_cycles(scheduler, clock, 1)
        assert scheduler.get_user_stats().badges == frozenset()
        assert events.of_type(DomainEventType.BADGE_UNLOCKED) == []

        await run_cycles(scheduler, clock, 1)
        assert scheduler.get_user_stats().badges == frozenset({"first_minute"})

    async def test_loop_survives_repeated_failures(self, make_scheduler, clock):
        """Failures never halt monitoring; the next good cycle counts."""
        scheduler = await make_scheduler(
            [ClassifierError("a"), ClassifierError("b"), focused()]
        )

        await run_cycles(scheduler, clock, 3)

        assert scheduler.get_snapshot().status == FocusStatus.FOCUSED
        assert scheduler.get_user_stats().total_focus_time_seconds == 5
        assert scheduler.get_statistics()["classifier_failures"] == 2


class TestElapsedAccounting:
    """Checkpoint clock handling."""

    async def test_cycle_credit_is_capped(self, make_scheduler, clock):
        scheduler = await make_scheduler([focused()])

        await run_cycles(scheduler, clock, 1, spacing=14.0)

        assert scheduler.get_user_stats().total_focus_time_seconds == 10

    async def test_gap_after_suspension_credits_nothing(self, make_scheduler, clock):
        scheduler = await make_scheduler([focused()])

        await run_cycles(scheduler, clock, 1, spacing=5.0)
        await run_cycles(scheduler, clock, 1, spacing=300.0)
        await run_cycles(scheduler, clock, 1, spacing=5.0)

        assert scheduler.get_user_stats().total_focus_time_seconds == 10

    async def test_skipped_cycle_still_moves_checkpoint(self, make_scheduler, clock, frame_source):
        """Elapsed time is measured between cycle starts, frame or not."""
        scheduler = await make_scheduler([focused()])

        frame_source.frame = None
        await run_cycles(scheduler, clock, 1, spacing=8.0)
        frame_source.frame = b"jpeg"
        await run_cycles(scheduler, clock, 1, spacing=5.0)

        assert scheduler.get_user_stats().total_focus_time_seconds == 5


class TestSkippedCycles:
    """Frame capture returning nothing."""

    async def test_no_frame_is_a_silent_skip(self, make_scheduler, clock, frame_source, events, audio_sink):
        classifier = ScriptedClassifier([absent()])
        scheduler = await make_scheduler(classifier=classifier)
        frame_source.frame = None

        snapshot = (await run_cycles(scheduler, clock, 1))[0]

        assert snapshot is None
        assert classifier.calls == 0
        assert scheduler.get_user_stats() == UserStats()
        assert scheduler.get_logs() == []
        assert audio_sink.calls == []
        assert events.of_type(DomainEventType.ENGINE_STATE_UPDATED) == []
        assert scheduler.get_statistics()["cycles_skipped"] == 1

    async def test_frame_source_exception_is_a_skip(self, make_scheduler, clock, frame_source, logger):
        def broken():
            raise OSError("camera unplugged")

        frame_source.capture_frame = broken
        scheduler = await make_scheduler([focused()])

        assert await scheduler.run_cycle() is None
        assert logger.get_system_logs(event_type="frame_capture_error", level="WARNING")

    async def test_frame_is_passed_to_classifier(self, make_scheduler, clock, frame_source):
        classifier = ScriptedClassifier([focused()])
        scheduler = await make_scheduler(classifier=classifier)

        await run_cycles(scheduler, clock, 1)

        assert classifier.images == [frame_source.frame]


class TestInFlightCycles:
    """Overlap and stop while a classification is pending."""

    async def test_stop_discards_in_flight_result(self, make_scheduler, clock, events):
        classifier = ScriptedClassifier([focused()], gated=True)
        scheduler = await make_scheduler(classifier=classifier)

        clock.advance(5)
        task = asyncio.create_task(scheduler.run_cycle())
        await classifier.started.wait()

        scheduler.stop()
        classifier.release()

        assert await task is None
        assert scheduler.get_user_stats() == UserStats()
        assert scheduler.get_logs() == []
        assert scheduler.get_snapshot().status == FocusStatus.IDLE
        assert scheduler.get_statistics()["results_discarded"] == 1

    async def test_overlapping_cycle_is_dropped(self, make_scheduler, clock):
        classifier = ScriptedClassifier([focused()], gated=True)
        scheduler = await make_scheduler(classifier=classifier)

        clock.advance(5)
        first = asyncio.create_task(scheduler.run_cycle())
        await classifier.started.wait()

        clock.advance(5)
        assert await scheduler.run_cycle() is None
        assert classifier.calls == 1

        classifier.release()
        snapshot = await first

        assert snapshot.status == FocusStatus.FOCUSED
        assert scheduler.get_user_stats().total_focus_time_seconds == 5
        assert scheduler.get_statistics()["cycles_dropped"] == 1

    async def test_overlap_allowed_when_configured(self, make_scheduler, clock, config):
        config.sampling.drop_overlapping_cycles = False
        classifier = ScriptedClassifier([focused()], gated=True)
        scheduler = await make_scheduler(classifier=classifier)

        clock.advance(5)
        first = asyncio.create_task(scheduler.run_cycle())
        await classifier.started.wait()
        clock.advance(5)
        second = asyncio.create_task(scheduler.run_cycle())
        await asyncio.sleep(0)

        classifier.release()
        await asyncio.gather(first, second)

        assert classifier.calls == 2
        assert scheduler.get_user_stats().total_focus_time_seconds == 10


class TestLogRetention:
    """Activity log through the scheduler."""

    async def test_log_capped_after_fifty_one_cycles(self, make_scheduler, clock):
        scheduler = await make_scheduler([distracted(f"cycle {i}") for i in range(1, 52)])

        await run_cycles(scheduler, clock, 51)

        messages = [entry.message for entry in scheduler.get_logs()]
        assert len(messages) == 50
        assert messages[0] == "cycle 51"
        assert "cycle 1" not in messages


class TestBadges:
    """Unlocks, toast and announcement ordering."""

    async def test_first_minute_unlock(self, make_scheduler, clock, audio_sink, events):
        scheduler = await make_scheduler([focused()])

        snapshots = await run_cycles(scheduler, clock, 6, spacing=10.0)

        assert all(s.new_badge is None for s in snapshots[:5])
        assert snapshots[5].new_badge.id == "first_minute"
        assert scheduler.get_user_stats().badges == frozenset({"first_minute"})
        assert audio_sink.calls == [("speak", "恭喜！获得了徽章：Getting Started", "zh-CN", False)]
        unlocked = events.of_type(DomainEventType.BADGE_UNLOCKED)
        assert [e.payload.id for e in unlocked] == ["first_minute"]

    async def test_announcement_queued_after_status_speech(self, make_scheduler, clock, audio_sink):
        scheduler = await make_scheduler([focused("加油")], random_value=0.99)

        await run_cycles(scheduler, clock, 6, spacing=10.0)

        assert audio_sink.calls[-2:] == [
            ("speak", "加油", "zh-CN", True),
            ("speak", "恭喜！获得了徽章：Getting Started", "zh-CN", False),
        ]

    async def test_badge_awarded_once(self, make_scheduler, clock, events):
        scheduler = await make_scheduler([focused()])

        await run_cycles(scheduler, clock, 10, spacing=10.0)

        assert len(events.of_type(DomainEventType.BADGE_UNLOCKED)) == 1

    async def test_badge_toast_expires(self, make_scheduler, clock, config):
        config.gamification.badge_toast_seconds = 0.01
        scheduler = await make_scheduler([focused()])

        await run_cycles(scheduler, clock, 6, spacing=10.0)
        assert scheduler.get_snapshot().new_badge is not None

        await asyncio.sleep(0.05)
        assert scheduler.get_snapshot().new_badge is None
        assert scheduler.get_user_stats().badges == frozenset({"first_minute"})

    async def test_audio_failure_does_not_affect_stats(self, make_scheduler, clock, logger):
        scheduler = await make_scheduler([absent()], sink=FailingAudioSink())

        await run_cycles(scheduler, clock, 2)

        assert scheduler.get_user_stats().distraction_count == 2
        assert len(scheduler.get_logs()) == 2
        assert logger.get_system_logs(event_type="audio_render_failed", level="ERROR")


class TestCustomAudio:
    """Persisted custom reminder clip."""

    async def test_save_enables_and_persists(self, make_scheduler, clock, config, audio_sink):
        scheduler = await make_scheduler([absent()])

        settings = scheduler.save_custom_audio(CLIP)
        await run_cycles(scheduler, clock, 1)

        assert settings["use_custom_audio"] is True
        assert settings["has_custom_clip"] is True
        assert audio_sink.calls == [("play_clip", CLIP)]
        with open(config.controller.settings_path, encoding="utf-8") as f:
            assert yaml.safe_load(f) == {"custom_audio_clip": CLIP}

    async def test_clip_loaded_at_initialize(self, make_scheduler, config):
        first = await make_scheduler([absent()])
        first.save_custom_audio(CLIP)

        second = await make_scheduler([absent()])

        assert second.get_audio_settings()["use_custom_audio"] is True
        assert second.get_audio_settings()["has_custom_clip"] is True

    async def test_empty_clip_deletes(self, make_scheduler, clock, audio_sink):
        scheduler = await make_scheduler([absent("人去哪里了")])
        scheduler.save_custom_audio(CLIP)

        settings = scheduler.save_custom_audio("")
        await run_cycles(scheduler, clock, 1)

        assert settings["use_custom_audio"] is False
        assert settings["has_custom_clip"] is False
        assert audio_sink.calls == [("speak", "人去哪里了", "zh-CN", True)]

    async def test_audio_disabled(self, make_scheduler, clock, audio_sink):
        scheduler = await make_scheduler([absent()])
        scheduler.set_audio_enabled(False)

        await run_cycles(scheduler, clock, 3)

        assert audio_sink.calls == []


class TestLifecycle:
    """start / stop / shutdown."""

    async def test_start_runs_immediate_cycle(self, make_scheduler, clock, events):
        classifier = ScriptedClassifier([focused()])
        scheduler = await make_scheduler(classifier=classifier)

        snapshot = scheduler.start()
        await asyncio.sleep(0.01)

        assert snapshot.is_monitoring
        assert scheduler.get_status() == SystemStatus.MONITORING
        assert classifier.calls == 1
        assert scheduler.get_statistics()["cycles_completed"] == 1
        assert len(events.of_type(DomainEventType.MONITORING_STARTED)) == 1

    async def test_start_resets_checkpoint(self, make_scheduler, clock):
        """Time spent before start() is never credited."""
        scheduler = await make_scheduler([focused()])
        clock.advance(9)

        scheduler.start()
        await asyncio.sleep(0.01)

        assert scheduler.get_user_stats().total_focus_time_seconds == 0

    async def test_start_is_idempotent(self, make_scheduler):
        classifier = ScriptedClassifier([focused()])
        scheduler = await make_scheduler(classifier=classifier)

        scheduler.start()
        scheduler.start()
        await asyncio.sleep(0.01)

        assert classifier.calls == 1

    async def test_stop_resets_display_and_is_idempotent(self, make_scheduler, events):
        scheduler = await make_scheduler([distracted()])
        scheduler.start()
        await asyncio.sleep(0.01)
        assert scheduler.get_snapshot().status == FocusStatus.DISTRACTED

        snapshot = scheduler.stop()
        scheduler.stop()

        assert snapshot.status == FocusStatus.IDLE
        assert snapshot.message == ""
        assert not snapshot.is_monitoring
        assert snapshot.stats.distraction_count == 1
        assert scheduler.get_status() == SystemStatus.READY
        assert len(events.of_type(DomainEventType.MONITORING_STOPPED)) == 1

    async def test_periodic_cycles(self, make_scheduler, config):
        config.sampling.interval_ms = 10
        classifier = ScriptedClassifier([focused()])
        scheduler = await make_scheduler(classifier=classifier)

        scheduler.start()
        await asyncio.sleep(0.1)
        scheduler.stop()
        calls = classifier.calls
        await asyncio.sleep(0.05)

        assert calls >= 3
        assert classifier.calls == calls

    async def test_start_requires_initialize(self, config):
        scheduler = SamplingScheduler(config, classifier=ScriptedClassifier([focused()]))

        with pytest.raises(RuntimeError):
            scheduler.start()

    async def test_shutdown_exports_session_log(self, make_scheduler, clock, config, frame_source):
        scheduler = await make_scheduler([focused()])
        await run_cycles(scheduler, clock, 2)

        await scheduler.shutdown()

        assert frame_source.closed
        assert scheduler.get_status() == SystemStatus.DISCONNECTED
        export = config.controller.session_log_dir + "/session_test.csv"
        with open(export, encoding="utf-8") as f:
            content = f.read()
        assert "cycle_applied" in content

    async def test_event_handler_errors_are_isolated(self, make_scheduler, clock, events, logger):
        scheduler = await make_scheduler([focused()])

        def broken(event):
            raise RuntimeError("subscriber bug")

        scheduler.register_event_handler(broken)
        events.events.clear()
        await run_cycles(scheduler, clock, 1)

        assert events.of_type(DomainEventType.ENGINE_STATE_UPDATED)
        assert logger.get_system_logs(event_type="event_handler_error", level="ERROR")


class BlockingFrameSource(FakeFrameSource):
    """Stands in for a webcam whose reads wait on the device."""

    blocking = True

    def __init__(self):
        super().__init__()
        self.capture_threads = []

    def capture_frame(self):
        self.capture_threads.append(threading.get_ident())
        return super().capture_frame()


class TestBlockingCapture:
    """Device reads stay off the event loop thread."""

    @pytest.fixture
    def frame_source(self):
        return BlockingFrameSource()

    async def test_blocking_source_read_in_worker_thread(self, make_scheduler, clock, frame_source):
        classifier = ScriptedClassifier([focused()])
        scheduler = await make_scheduler(classifier=classifier)

        snapshot = (await run_cycles(scheduler, clock, 1))[0]

        assert snapshot.status == FocusStatus.FOCUSED
        assert classifier.images == [frame_source.frame]
        assert frame_source.capture_threads
        assert threading.get_ident() not in frame_source.capture_threads

    async def test_non_blocking_source_read_inline(self, make_scheduler, clock, frame_source):
        frame_source.blocking = False
        scheduler = await make_scheduler([focused()])

        await run_cycles(scheduler, clock, 1)

        assert frame_source.capture_threads == [threading.get_ident()]


class TestAudioSettingValidation:
    """Audio toggles accept booleans only."""

    @pytest.mark.parametrize("value", ["false", 0, 1, None, "true"])
    async def test_non_boolean_enabled_rejected(self, make_scheduler, clock, audio_sink, value):
        scheduler = await make_scheduler([absent()])
        scheduler.set_audio_enabled(False)

        with pytest.raises(ValueError):
            scheduler.set_audio_enabled(value)
        await run_cycles(scheduler, clock, 1)

        assert scheduler.get_audio_settings()["enabled"] is False
        assert audio_sink.calls == []

    async def test_non_boolean_use_custom_audio_rejected(self, make_scheduler):
        scheduler = await make_scheduler()

        with pytest.raises(ValueError):
            scheduler.set_use_custom_audio("yes")

        assert scheduler.get_audio_settings()["use_custom_audio"] is False


class TestStopRecord:
    """Lifecycle log records keep the values they were written with."""

    async def test_stop_record_not_changed_by_later_cycles(self, make_scheduler, clock, logger):
        scheduler = await make_scheduler([focused()])
        scheduler.start()
        await asyncio.sleep(0.01)
        scheduler.stop()

        await run_cycles(scheduler, clock, 2)

        record = logger.get_system_logs(event_type="monitoring_stopped")[-1]
        assert record.data["stats"]["cycles_completed"] == 1
        assert scheduler.get_statistics()["cycles_completed"] == 3


class TestTickDeadlines:
    """Fixed-rate timer grid."""

    def test_next_tick_on_grid(self):
        assert next_tick_deadline(100.0, 5.0, 101.0) == 105.0

    def test_late_wakeup_does_not_shift_grid(self):
        assert next_tick_deadline(105.0, 5.0, 105.4) == 110.0

    def test_missed_ticks_skipped(self):
        assert next_tick_deadline(100.0, 5.0, 117.0) == 120.0

    def test_exactly_on_deadline_moves_to_next(self):
        assert next_tick_deadline(100.0, 5.0, 105.0) == 110.0
