"""
Type definitions for WebSocket and API messages.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from enum import Enum


class MessageType(Enum):
    """Types of WebSocket messages."""
    # From client to backend
    START_MONITORING = "start_monitoring"
    STOP_MONITORING = "stop_monitoring"
    FRAME_UPDATE = "frame_update"
    CONFIG_UPDATE = "config_update"

    # From backend to client
    STATE_UPDATE = "state_update"
    BADGE_UNLOCKED = "badge_unlocked"
    AUDIO_INTENT = "audio_intent"
    STATUS_UPDATE = "status_update"
    ERROR = "error"

    # Bidirectional
    PING = "ping"
    PONG = "pong"


class SystemStatus(Enum):
    """System status states."""
    INITIALIZING = "initializing"
    READY = "ready"
    MONITORING = "monitoring"
    DISCONNECTED = "disconnected"


@dataclass
class WebSocketMessage:
    """Base WebSocket message structure."""
    type: MessageType
    timestamp: float
    payload: Dict[str, Any] = field(default_factory=dict)
    message_id: Optional[str] = None
    target_client_id: Optional[str] = None  # For targeted messages

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "message_id": self.message_id,
            "target_client_id": self.target_client_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebSocketMessage":
        """Create message from dictionary. Raises ValueError on unknown type."""
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValueError("Message payload must be an object")
        return cls(
            type=MessageType(data.get("type")),
            timestamp=data.get("timestamp", 0),
            payload=payload,
            message_id=data.get("message_id"),
        )


@dataclass
class SystemStatusMessage:
    """System status update message."""
    status: SystemStatus
    timestamp: float

    is_monitoring: bool = False
    classifier_model: Optional[str] = None
    classifier_configured: bool = False
    frame_source: Optional[str] = None

    # Statistics
    cycles_completed: int = 0
    cycles_skipped: int = 0
    cycles_dropped: int = 0
    classifier_failures: int = 0

    session_id: Optional[str] = None
    error_message: Optional[str] = None
