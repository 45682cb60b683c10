from dataclasses import is_dataclass, fields
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


def json_safe(x: Any) -> Any:
    # Types with their own wire shape win over the generic dataclass walk
    if hasattr(x, "to_dict") and callable(x.to_dict) and not isinstance(x, type):
        return json_safe(x.to_dict())
    if isinstance(x, Path):
        return str(x)
    if isinstance(x, datetime):
        return x.isoformat()
    if is_dataclass(x) and not isinstance(x, type):
        return {f.name: json_safe(getattr(x, f.name)) for f in fields(x)}
    if isinstance(x, Enum):
        return x.value
    if isinstance(x, dict):
        return {k: json_safe(v) for k, v in x.items()}
    if isinstance(x, (set, frozenset)):
        return sorted(json_safe(v) for v in x)
    if isinstance(x, (list, tuple)):
        return [json_safe(v) for v in x]
    return x
