"""
Domain-level event types for the SamplingScheduler.

These events are transport-agnostic and represent engine state changes
that external systems (e.g., the WebSocket server) can subscribe to.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class DomainEventType(Enum):
    """Types of domain events emitted by the SamplingScheduler."""

    # Emitted after every applied cycle and on start/stop
    ENGINE_STATE_UPDATED = "engine_state_updated"

    BADGE_UNLOCKED = "badge_unlocked"

    # Speech / clip playback requests for the renderer
    AUDIO_INTENT = "audio_intent"

    SYSTEM_STATUS_UPDATED = "system_status_updated"

    # Monitoring lifecycle
    MONITORING_STARTED = "monitoring_started"
    MONITORING_STOPPED = "monitoring_stopped"


@dataclass
class DomainEvent:
    """
    A domain-level event emitted by the SamplingScheduler.

    Attributes:
        event_type: The type of domain event.
        timestamp: Unix timestamp when the event was created.
        payload: Event-specific domain object (e.g., EngineSnapshot, AudioIntent).
        metadata: Optional metadata about the event context.
    """
    event_type: DomainEventType
    timestamp: float = field(default_factory=lambda: datetime.now(timezone.utc).timestamp())
    payload: Any = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "metadata": self.metadata,
        }
