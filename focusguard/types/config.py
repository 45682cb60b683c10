"""
Configuration type definitions for the engine, its adapters and the servers.
"""
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Optional, List, Dict, Any, Type, TypeVar, get_origin, get_args, Union
from enum import Enum

import yaml

T = TypeVar("T")

# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------

def _is_optional(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union and type(None) in get_args(tp)


def _strip_optional(tp: Any) -> Any:
    return next(t for t in get_args(tp) if t is not type(None))


def _coerce_value(value: Any, target_type: Any) -> Any:
    """Convert a YAML value into the target field type."""
    if value is None:
        return None

    if _is_optional(target_type):
        return _coerce_value(value, _strip_optional(target_type))

    if isinstance(target_type, type) and issubclass(target_type, Enum):
        return target_type(value)

    if isinstance(target_type, type) and is_dataclass(target_type):
        return _dict_to_dataclass(value, target_type)

    origin = get_origin(target_type)

    if origin in (list, List):
        (item_type,) = get_args(target_type)
        return [_coerce_value(v, item_type) for v in value]

    if origin in (dict, Dict):
        key_type, val_type = get_args(target_type)
        return {
            _coerce_value(k, key_type): _coerce_value(v, val_type)
            for k, v in value.items()
        }

    # YAML happily hands back ints for float fields and vice versa
    if target_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)

    return value


def _dict_to_dataclass(data: Dict[str, Any], cls: Type[T]) -> T:
    """Create dataclass instance from dict (ignores unknown keys)."""
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping for {cls.__name__}, got {type(data).__name__}")

    field_map = {f.name: f for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_map:
            continue  # ignore unknown config keys
        kwargs[key] = _coerce_value(value, field_map[key].type)

    return cls(**kwargs)


def _dataclass_to_dict(obj: Any) -> Any:
    """Convert dataclass to YAML-safe dict."""
    if is_dataclass(obj):
        return {f.name: _dataclass_to_dict(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _dataclass_to_dict(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_dataclass_to_dict(v) for v in obj]
    return obj

#------------------------------------------------------------------
# Configuration Data Classes
#------------------------------------------------------------------


class ClassifierProvider(Enum):
    """Backends for the visual classifier."""
    OPENAI = "openai"
    DEVELOPMENT = "development"  # Scripted, no network


class FrameCaptureMode(Enum):
    """Where frames come from."""
    PUSHED = "pushed"  # Browser client pushes frames over the WebSocket
    OPENCV = "opencv"  # Local webcam
    SIMULATED = "simulated"


class AudioSinkMode(Enum):
    """How audio intents are rendered."""
    EVENTS = "events"  # Published to presentation clients
    LOG = "log"  # Written to the system log only


@dataclass
class SamplingConfig:
    """Configuration for the Sampling Scheduler."""
    interval_ms: int = 5000

    # Elapsed-time accounting
    gap_threshold_seconds: float = 20.0  # Larger gaps count as zero
    max_elapsed_seconds: float = 10.0  # Cap per cycle

    # Drop a cycle when the previous classification is still in flight
    drop_overlapping_cycles: bool = True

    def __post_init__(self):
        if self.interval_ms <= 0:
            raise ValueError("sampling.interval_ms must be positive")
        if self.max_elapsed_seconds > self.gap_threshold_seconds:
            raise ValueError(
                "sampling.max_elapsed_seconds must not exceed sampling.gap_threshold_seconds"
            )

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


@dataclass
class ClassifierConfig:
    """Configuration for the Visual Classifier adapter."""
    provider: ClassifierProvider = ClassifierProvider.OPENAI
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None  # Falls back to OPENAI_API_KEY
    base_url: Optional[str] = None
    timeout_seconds: float = 20.0
    max_tokens: int = 200


@dataclass
class FrameCaptureConfig:
    """Configuration for the Frame Capture adapter."""
    mode: FrameCaptureMode = FrameCaptureMode.PUSHED

    # OpenCV settings
    camera_index: int = 0
    width: int = 640
    height: int = 480
    jpeg_quality: int = 60

    # Simulated settings
    simulated_image_path: Optional[str] = None

    # Pushed frames older than this are treated as "camera not ready"
    max_frame_age_seconds: float = 15.0


@dataclass
class AudioConfig:
    """Configuration for audio feedback."""
    enabled: bool = True
    use_custom_audio: bool = False
    sink: AudioSinkMode = AudioSinkMode.EVENTS

    speech_lang: str = "zh-CN"

    # Share of FOCUSED cycles that get spoken encouragement
    focused_voice_probability: float = 0.15

    badge_announcement_template: str = "恭喜！获得了徽章：{name}"

    # Seed for the encouragement gate (None = nondeterministic)
    random_seed: Optional[int] = None


@dataclass
class GamificationConfig:
    """Configuration for stats presentation and badges."""
    log_capacity: int = 50
    badge_toast_seconds: float = 4.0


@dataclass
class ControllerConfig:
    """Configuration for the servers and session bookkeeping."""
    # WebSocket settings
    websocket_host: str = "localhost"
    websocket_port: int = 8765

    # API settings
    api_host: str = "localhost"
    api_port: int = 8080

    # Durable key/value settings (custom audio clip)
    settings_path: str = "focusguard_settings.yaml"

    # Session log export (None disables export on shutdown)
    session_log_dir: Optional[str] = "logs/sessions"
    session_id: Optional[str] = None

    # Start monitoring as soon as the server is up
    autostart: bool = False


@dataclass
class SystemConfig:
    """Complete system configuration."""
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    frame_capture: FrameCaptureConfig = field(default_factory=FrameCaptureConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    gamification: GamificationConfig = field(default_factory=GamificationConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        return _dict_to_dataclass(data, cls)

    def to_dict(self) -> Dict[str, Any]:
        return _dataclass_to_dict(self)

    @classmethod
    def from_file(cls, path: str) -> "SystemConfig":
        """Load configuration from YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError("Top-level YAML must be a mapping")

        return cls.from_dict(data)

    def to_file(self, path: str) -> None:
        """Save configuration to YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.to_dict(),
                f,
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
