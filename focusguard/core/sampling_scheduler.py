"""
Sampling Scheduler

The control layer of the engine. It owns the monitoring lifecycle and all
mutable engine state (stats aggregate, checkpoint clock, activity log,
displayed status) and drives the periodic cycle:

    capture frame -> classify -> stats -> badge -> log -> audio -> publish

Responsibilities:
- start/stop of the fixed-period sampling loop (first cycle immediately)
- elapsed-time accounting against the checkpoint clock
- turning classifier failures into a local ERROR result
- dropping cycles that fire while the previous classification is in flight
- discarding results of cycles issued before the last stop()
- publishing an engine snapshot to presentation after every cycle
"""
import asyncio
import contextlib
import math
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Union, Any

from focusguard.layers.audio_arbitrator import AudioFeedbackLayer, RandomSource
from focusguard.layers.badge_evaluator import BADGE_CATALOG, check_badges
from focusguard.layers.log_buffer import LogBuffer
from focusguard.layers.scoreboard import build_stats_overview
from focusguard.layers.stats_accumulator import accumulate
from focusguard.services.audio import AudioSink, create_audio_sink
from focusguard.services.classifier import VisualClassifier, create_visual_classifier
from focusguard.services.frame_capture import FrameSource, PushedFrameSource, create_frame_source
from focusguard.services.logger_service import get_logger
from focusguard.services.settings_store import SettingsStore
from focusguard.types import (
    Badge,
    ClassificationResult,
    EngineSnapshot,
    FocusStatus,
    LogEntry,
    StatsOverview,
    SystemConfig,
    UserStats,
)
from focusguard.types.domain_events import DomainEvent, DomainEventType
from focusguard.types.messages import SystemStatus, SystemStatusMessage


def next_tick_deadline(previous: float, interval: float, now: float) -> float:
    """
    Next fixed-rate tick after `previous`.

    Ticks stay on the grid previous + k * interval so the period does not
    drift with cycle overhead. Ticks already in the past are skipped.
    """
    deadline = previous + interval
    if deadline <= now:
        missed = math.floor((now - deadline) / interval) + 1
        deadline += missed * interval
    return deadline


def _require_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"'{name}' must be a boolean, got {type(value).__name__}")
    return value


class SamplingScheduler:
    """
    Central orchestrator for focus monitoring.
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        classifier: Optional[VisualClassifier] = None,
        frame_source: Optional[FrameSource] = None,
        audio_sink: Optional[AudioSink] = None,
        settings_store: Optional[SettingsStore] = None,
        clock: Optional[Callable[[], float]] = None,
        random_source: Optional[RandomSource] = None,
    ):
        """
        Initialize the Sampling Scheduler.

        Collaborators left as None are created from configuration in
        initialize().

        Args:
            config: Complete system configuration.
            classifier: Visual classifier adapter.
            frame_source: Frame capture adapter.
            audio_sink: Renderer for speech and clips.
            settings_store: Durable key/value store for the custom clip.
            clock: Monotonic seconds source for elapsed-time accounting.
            random_source: Uniform [0, 1) source for the encouragement gate.
        """
        self._config = config or SystemConfig()
        self._logger = get_logger()
        self._clock = clock or time.monotonic

        # Collaborators
        self._classifier = classifier
        self._frame_source = frame_source
        self._settings_store = settings_store
        self._audio = AudioFeedbackLayer(
            self._config.audio,
            sink=audio_sink,
            random_source=random_source,
            logger=self._logger,
        )
        self._audio_sink_injected = audio_sink is not None
        self._log_buffer = LogBuffer(self._config.gamification.log_capacity)

        # Engine state
        self._status: SystemStatus = SystemStatus.INITIALIZING
        self._focus_status: FocusStatus = FocusStatus.IDLE
        self._message: str = ""
        self._user_stats = UserStats()
        self._new_badge: Optional[Badge] = None
        self._badge_toast_handle: Optional[asyncio.TimerHandle] = None
        self._checkpoint: float = self._clock()

        # Loop state. The generation changes on every start/stop; a cycle
        # only applies its result if the generation is unchanged.
        self._is_monitoring: bool = False
        self._generation: int = 0
        self._in_flight: Dict[int, int] = {}
        self._loop_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()

        self._stats: Dict[str, Any] = {
            "cycles_completed": 0,
            "cycles_skipped": 0,
            "cycles_dropped": 0,
            "classifier_failures": 0,
            "results_discarded": 0,
            "session_start": None,
        }

        self._event_handlers: List[Callable[[DomainEvent], None]] = []

        self._session_id: str = (
            self._config.controller.session_id
            or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        )

        self._logger.system(
            "sampling_scheduler_created",
            {
                "interval_ms": self._config.sampling.interval_ms,
                "session_id": self._session_id,
            },
            level="DEBUG",
        )

    # --- Lifecycle ---

    async def initialize(self) -> bool:
        """
        Create missing collaborators and load persisted settings.

        Returns:
            True once the scheduler is ready to start.
        """
        self._logger.system("sampling_scheduler_initializing", {}, level="DEBUG")

        if self._classifier is None:
            self._classifier = create_visual_classifier(self._config.classifier)

        if self._frame_source is None:
            self._frame_source = create_frame_source(self._config.frame_capture)
        if not self._frame_source.open():
            self._logger.system(
                "frame_source_not_ready",
                {"source": self._frame_source.describe()},
                level="WARNING",
            )

        if not self._audio_sink_injected:
            self._audio.set_sink(create_audio_sink(self._config.audio, self._publish))

        if self._settings_store is None:
            self._settings_store = SettingsStore(self._config.controller.settings_path)
        self._load_persisted_settings()

        self._status = SystemStatus.READY
        self._logger.system("sampling_scheduler_ready", self._status_summary(), level="INFO")
        self._publish(DomainEvent(
            event_type=DomainEventType.SYSTEM_STATUS_UPDATED,
            payload=self.get_system_status(),
        ))
        return True

    async def shutdown(self) -> None:
        """Stop monitoring, release devices and export the session log."""
        self.stop()

        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        for task in list(self._cycle_tasks):
            task.cancel()
        for task in list(self._cycle_tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._badge_toast_handle is not None:
            self._badge_toast_handle.cancel()
            self._badge_toast_handle = None

        if self._frame_source is not None:
            self._frame_source.close()

        if self._config.controller.session_log_dir:
            self.export_session_data()

        self._status = SystemStatus.DISCONNECTED
        self._logger.system("sampling_scheduler_shutdown", {"final_stats": self.get_statistics()}, level="INFO")

    def configure(self, config: SystemConfig) -> None:
        """
        Update system configuration.

        Sampling and gamification values take effect from the next cycle;
        audio settings immediately. Adapters are not recreated.
        """
        self._config = config
        self._audio.configure(config.audio)
        if config.gamification.log_capacity != self._log_buffer.capacity:
            self._log_buffer.resize(config.gamification.log_capacity)

        self._logger.system(
            "sampling_scheduler_reconfigured",
            {"interval_ms": config.sampling.interval_ms},
            level="INFO",
        )

    def start(self) -> EngineSnapshot:
        """
        Start monitoring: reset the checkpoint clock, run one cycle right
        away, then one cycle per sampling interval until stop().

        Must be called from within a running event loop.
        """
        if self._is_monitoring:
            self._logger.system("monitoring_already_running", {}, level="DEBUG")
            return self.get_snapshot()

        if self._status == SystemStatus.INITIALIZING:
            raise RuntimeError("initialize() must complete before start()")

        self._is_monitoring = True
        self._generation += 1
        self._checkpoint = self._clock()
        self._status = SystemStatus.MONITORING
        if self._stats["session_start"] is None:
            self._stats["session_start"] = datetime.now(timezone.utc).timestamp()

        self._spawn_cycle()
        self._loop_task = asyncio.create_task(self._run_loop(self._generation))

        self._logger.system(
            "monitoring_started",
            {"interval_ms": self._config.sampling.interval_ms, "generation": self._generation},
        )
        self._logger.session("monitoring_started", {"session_id": self._session_id})

        snapshot = self.get_snapshot()
        self._publish(DomainEvent(event_type=DomainEventType.MONITORING_STARTED, payload=snapshot))
        self._publish(DomainEvent(event_type=DomainEventType.ENGINE_STATE_UPDATED, payload=snapshot))
        return snapshot

    def stop(self) -> EngineSnapshot:
        """
        Stop monitoring. Idempotent.

        Cancels the pending timer; classifications already in flight run
        to completion but their results are discarded.
        """
        was_monitoring = self._is_monitoring
        self._is_monitoring = False
        self._generation += 1

        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None

        self._focus_status = FocusStatus.IDLE
        self._message = ""
        if self._status == SystemStatus.MONITORING:
            self._status = SystemStatus.READY

        snapshot = self.get_snapshot()
        if was_monitoring:
            self._logger.system("monitoring_stopped", {"stats": self.get_statistics()})
            self._logger.session(
                "monitoring_stopped",
                {
                    "session_id": self._session_id,
                    "total_focus_time_seconds": self._user_stats.total_focus_time_seconds,
                    "distraction_count": self._user_stats.distraction_count,
                },
            )
            self._publish(DomainEvent(event_type=DomainEventType.MONITORING_STOPPED, payload=snapshot))
            self._publish(DomainEvent(event_type=DomainEventType.ENGINE_STATE_UPDATED, payload=snapshot))
        return snapshot

    def is_monitoring(self) -> bool:
        return self._is_monitoring

    # --- Cycle ---

    async def run_cycle(self, generation: Optional[int] = None) -> Optional[EngineSnapshot]:
        """
        Run one capture -> classify -> update cycle.

        Args:
            generation: Monitoring generation the cycle was issued for.
                Defaults to the current one.

        Returns:
            The published snapshot, or None if the cycle was dropped,
            skipped for lack of a frame, or discarded after stop().
        """
        if generation is None:
            generation = self._generation
        elif generation != self._generation:
            # Timer fired before stop() but the cycle only got scheduled after
            return None

        if self._config.sampling.drop_overlapping_cycles and self._in_flight.get(generation, 0) > 0:
            self._stats["cycles_dropped"] += 1
            self._logger.system("cycle_dropped_busy", {"generation": generation}, level="DEBUG")
            return None

        # Checkpoint moves before capture/classification latency is incurred
        now = self._clock()
        elapsed = now - self._checkpoint
        self._checkpoint = now

        self._in_flight[generation] = self._in_flight.get(generation, 0) + 1
        try:
            frame = await self._capture()
            if frame is None:
                self._stats["cycles_skipped"] += 1
                self._logger.system("cycle_skipped_no_frame", {}, level="DEBUG")
                return None
            result = await self._classify(frame)
        finally:
            remaining = self._in_flight.get(generation, 1) - 1
            if remaining > 0:
                self._in_flight[generation] = remaining
            else:
                self._in_flight.pop(generation, None)

        if generation != self._generation:
            self._stats["results_discarded"] += 1
            self._logger.system(
                "cycle_result_discarded",
                {"cycle_generation": generation, "current_generation": self._generation},
                level="DEBUG",
            )
            return None

        return self._apply_result(result, elapsed)

    async def _capture(self) -> Optional[bytes]:
        source = self._frame_source
        if source is None:
            return None
        try:
            if source.blocking:
                return await asyncio.to_thread(source.capture_frame)
            return source.capture_frame()
        except Exception as e:
            self._logger.system(
                "frame_capture_error",
                {"error": str(e), "type": type(e).__name__},
                level="WARNING",
            )
            return None

    async def _classify(self, frame: bytes) -> ClassificationResult:
        """Classify a frame; any failure becomes a local ERROR result."""
        try:
            if self._classifier is None:
                raise RuntimeError("No classifier configured")
            return await self._classifier.classify(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._stats["classifier_failures"] += 1
            self._logger.system(
                "classifier_failure",
                {"error": str(e), "type": type(e).__name__},
                level="ERROR",
            )
            return ClassificationResult.failed()

    def _apply_result(self, result: ClassificationResult, elapsed: float) -> EngineSnapshot:
        """Feed a classification through stats, badges, log and audio."""
        self._focus_status = result.status
        self._message = result.message

        sampling = self._config.sampling
        self._user_stats = accumulate(
            self._user_stats,
            result.status,
            elapsed,
            gap_threshold_seconds=sampling.gap_threshold_seconds,
            max_elapsed_seconds=sampling.max_elapsed_seconds,
        )

        badge: Optional[Badge] = None
        if result.status != FocusStatus.ERROR:
            badge = check_badges(self._user_stats, self._user_stats.badges, BADGE_CATALOG)
            if badge is not None:
                self._user_stats = self._user_stats.with_badge(badge.id)
                self._show_badge_toast(badge)
                self._logger.session(
                    "badge_unlocked",
                    {"badge_id": badge.id, "badge_name": badge.name},
                )
                self._publish(DomainEvent(
                    event_type=DomainEventType.BADGE_UNLOCKED,
                    payload=badge,
                ))

            self._log_buffer.record(result)

            self._audio.handle_status(result.status, result.message)
            if badge is not None:
                self._audio.announce_badge(badge)

        self._stats["cycles_completed"] += 1
        self._logger.session(
            "cycle_applied",
            {
                "status": result.status.value,
                "confidence": result.confidence,
                "elapsed_seconds": round(elapsed, 3),
                "total_focus_time_seconds": self._user_stats.total_focus_time_seconds,
                "current_streak_seconds": self._user_stats.current_streak_seconds,
                "distraction_count": self._user_stats.distraction_count,
            },
            level="DEBUG" if result.status == FocusStatus.ERROR else "INFO",
        )

        snapshot = self.get_snapshot()
        self._publish(DomainEvent(event_type=DomainEventType.ENGINE_STATE_UPDATED, payload=snapshot))
        return snapshot

    async def _run_loop(self, generation: int) -> None:
        """Fixed-period timer. The first cycle was already spawned by start()."""
        self._logger.system("sampling_loop_started", {"generation": generation}, level="DEBUG")
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        try:
            while True:
                deadline = next_tick_deadline(deadline, self._config.sampling.interval_seconds, loop.time())
                await asyncio.sleep(deadline - loop.time())
                if not self._is_monitoring or generation != self._generation:
                    break
                self._spawn_cycle()
        finally:
            self._logger.system("sampling_loop_ended", {"generation": generation}, level="DEBUG")

    def _spawn_cycle(self) -> None:
        """Run a cycle as its own task so slow classification never delays the timer."""
        task = asyncio.create_task(self.run_cycle(self._generation))
        self._cycle_tasks.add(task)

        def _handle_task_result(t: asyncio.Task) -> None:
            self._cycle_tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                self._logger.system(
                    "cycle_task_error",
                    {"error": str(exc), "type": type(exc).__name__},
                    level="ERROR",
                )

        task.add_done_callback(_handle_task_result)

    # --- Badge toast ---

    def _show_badge_toast(self, badge: Badge) -> None:
        if self._badge_toast_handle is not None:
            self._badge_toast_handle.cancel()
            self._badge_toast_handle = None

        self._new_badge = badge
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._badge_toast_handle = loop.call_later(
            self._config.gamification.badge_toast_seconds,
            self._clear_badge_toast,
            badge.id,
        )

    def _clear_badge_toast(self, badge_id: str) -> None:
        self._badge_toast_handle = None
        if self._new_badge is None or self._new_badge.id != badge_id:
            return
        self._new_badge = None
        self._publish(DomainEvent(
            event_type=DomainEventType.ENGINE_STATE_UPDATED,
            payload=self.get_snapshot(),
        ))

    # --- Audio settings ---

    def set_audio_enabled(self, enabled: bool) -> Dict[str, Any]:
        enabled = _require_bool("enabled", enabled)
        self._audio.set_enabled(enabled)
        self._logger.system("audio_enabled_changed", {"enabled": enabled})
        return self.get_audio_settings()

    def set_use_custom_audio(self, enabled: bool) -> Dict[str, Any]:
        enabled = _require_bool("enabled", enabled)
        self._audio.set_use_custom_audio(enabled)
        self._logger.system("use_custom_audio_changed", {"enabled": enabled})
        return self.get_audio_settings()

    def save_custom_audio(self, clip: Optional[str]) -> Dict[str, Any]:
        """
        Store (or with an empty clip, delete) the custom reminder clip.

        Saving a clip switches the custom channel on; deleting it switches
        the channel off.

        Raises:
            OSError: If the settings file cannot be written.
        """
        clip = clip or None
        if self._settings_store is not None:
            try:
                self._settings_store.save_custom_audio(clip)
            except OSError as e:
                self._logger.system(
                    "custom_audio_persist_failed",
                    {"error": str(e)},
                    level="ERROR",
                )
                raise

        self._audio.set_custom_clip(clip)
        self._audio.set_use_custom_audio(clip is not None)
        self._logger.system(
            "custom_audio_saved" if clip else "custom_audio_deleted",
            {"clip_length": len(clip) if clip else 0},
        )
        return self.get_audio_settings()

    def get_audio_settings(self) -> Dict[str, Any]:
        return {
            "enabled": self._audio.enabled,
            "use_custom_audio": self._audio.use_custom_audio,
            "has_custom_clip": self._audio.custom_clip is not None,
            "speech_lang": self._config.audio.speech_lang,
        }

    def _load_persisted_settings(self) -> None:
        try:
            clip = self._settings_store.get_custom_audio()
        except (OSError, ValueError) as e:
            self._logger.system(
                "settings_load_failed",
                {"path": self._settings_store.path, "error": str(e)},
                level="WARNING",
            )
            return

        if clip:
            self._audio.set_custom_clip(clip)
            self._audio.set_use_custom_audio(True)
            self._logger.system("custom_audio_loaded", {"clip_length": len(clip)}, level="DEBUG")

    # --- Frames pushed by clients ---

    def push_frame(self, image: Union[str, bytes]) -> bool:
        """
        Hand a client-captured frame to the pushed frame source.

        Returns:
            False if the configured source does not accept pushed frames.

        Raises:
            ValueError: If the frame payload cannot be decoded.
        """
        if not isinstance(self._frame_source, PushedFrameSource):
            self._logger.system(
                "frame_push_ignored",
                {"source": self._frame_source.describe() if self._frame_source else None},
                level="DEBUG",
            )
            return False
        self._frame_source.push_frame(image)
        return True

    # --- Queries ---

    def get_snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            status=self._focus_status,
            message=self._message,
            stats=self._user_stats,
            new_badge=self._new_badge,
            logs=self._log_buffer.snapshot(),
            is_monitoring=self._is_monitoring,
            timestamp=datetime.now(timezone.utc).timestamp(),
        )

    def get_user_stats(self) -> UserStats:
        return self._user_stats

    def get_logs(self) -> List[LogEntry]:
        return self._log_buffer.snapshot()

    def get_stats_overview(self) -> StatsOverview:
        return build_stats_overview(self._user_stats, newest_badge=self._new_badge)

    def get_status(self) -> SystemStatus:
        return self._status

    def get_system_status(self) -> SystemStatusMessage:
        """
        Get detailed system status message.
        """
        return SystemStatusMessage(
            status=self._status,
            timestamp=datetime.now(timezone.utc).timestamp(),
            is_monitoring=self._is_monitoring,
            classifier_model=self._classifier.get_model_name() if self._classifier else None,
            classifier_configured=bool(self._classifier and self._classifier.is_configured()),
            frame_source=self._frame_source.describe() if self._frame_source else None,
            cycles_completed=self._stats["cycles_completed"],
            cycles_skipped=self._stats["cycles_skipped"],
            cycles_dropped=self._stats["cycles_dropped"],
            classifier_failures=self._stats["classifier_failures"],
            session_id=self._session_id,
        )

    def get_statistics(self) -> Dict[str, Any]:
        return dict(self._stats)

    def export_session_data(self) -> bool:
        """
        Export the session log to CSV under the configured directory.

        Returns:
            True if export successful.
        """
        log_dir = self._config.controller.session_log_dir
        if not log_dir:
            self._logger.system("export_session_data_disabled", {}, level="WARNING")
            return False
        filepath = str(Path(log_dir) / f"session_{self._session_id}.csv")
        return self._logger.export_logs("session", filepath)

    # --- Domain Event Publishing ---

    def register_event_handler(self, handler: Callable[[DomainEvent], None]) -> None:
        """
        Register a handler for domain events.

        Args:
            handler: Function to call with domain events.
        """
        self._event_handlers.append(handler)

    def _publish(self, event: DomainEvent) -> None:
        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.system(
                    "event_handler_error",
                    {"error": str(e), "event_type": event.event_type.value},
                    level="ERROR",
                )

    def _status_summary(self) -> Dict[str, Any]:
        return {
            "classifier": self._classifier.get_model_name() if self._classifier else None,
            "frame_source": self._frame_source.describe() if self._frame_source else None,
            "audio": self.get_audio_settings(),
            "session_id": self._session_id,
        }
