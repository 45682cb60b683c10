# Type definitions for the focus monitoring engine
from .focus import (
    FocusStatus,
    ClassificationResult,
    LogEntry,
    CLASSIFIABLE_STATUSES,
)
from .gamification import (
    UserStats,
    Badge,
    BadgeProgress,
    LeaderboardEntry,
    StatsOverview,
)
from .audio import (
    AudioChannel,
    AudioDecision,
    AudioAction,
    AudioIntent,
)
from .engine_state import EngineSnapshot
from .config import (
    SamplingConfig,
    ClassifierConfig,
    FrameCaptureConfig,
    AudioConfig,
    GamificationConfig,
    ControllerConfig,
    SystemConfig,
    ClassifierProvider,
    FrameCaptureMode,
    AudioSinkMode,
)
from .messages import (
    MessageType,
    SystemStatus,
    WebSocketMessage,
    SystemStatusMessage,
)

__all__ = [
    # Focus types
    "FocusStatus",
    "ClassificationResult",
    "LogEntry",
    "CLASSIFIABLE_STATUSES",
    # Gamification types
    "UserStats",
    "Badge",
    "BadgeProgress",
    "LeaderboardEntry",
    "StatsOverview",
    # Audio types
    "AudioChannel",
    "AudioDecision",
    "AudioAction",
    "AudioIntent",
    # Engine state
    "EngineSnapshot",
    # Config types
    "SamplingConfig",
    "ClassifierConfig",
    "FrameCaptureConfig",
    "AudioConfig",
    "GamificationConfig",
    "ControllerConfig",
    "SystemConfig",
    "ClassifierProvider",
    "FrameCaptureMode",
    "AudioSinkMode",
    # Message types
    "MessageType",
    "SystemStatus",
    "WebSocketMessage",
    "SystemStatusMessage",
]
