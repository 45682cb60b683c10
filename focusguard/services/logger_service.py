"""
Logger Service

Provides structured logging with two main categories:
1. Session Logging - What happened during monitoring (cycles, badges, start/stop)
2. System Logging - Technical/debugging information

Supports configurable log levels and thresholds per category.
"""
import csv
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Any, List, Optional

from focusguard.api.serialization import json_safe


class LogLevel(Enum):
    """Log level hierarchy (ascending severity)."""
    ERROR = 4
    WARNING = 3
    INFO = 2
    DEBUG = 1


class LogCategory(Enum):
    SESSION = "session"
    SYSTEM = "system"


@dataclass
class LogRecord:
    """A single structured log record."""
    timestamp: float
    level: str
    event_type: str
    data: Dict[str, Any]
    category: str  # "session" or "system"


class LoggerService:
    """
    Centralized logging service for session and system logs.
    """

    def __init__(
        self,
        session_level: str = "INFO",
        system_level: str = "INFO",
        max_entries: int = 10000,
        echo: bool = True,
    ):
        """
        Initialize the logger service.

        Args:
            session_level: Threshold for session logs (DEBUG, INFO, WARNING, ERROR).
            system_level: Threshold for system logs (DEBUG, INFO, WARNING, ERROR).
            max_entries: Maximum retained entries per category.
            echo: Print system records to the console.
        """
        self._records: Dict[LogCategory, List[LogRecord]] = {
            LogCategory.SESSION: [],
            LogCategory.SYSTEM: [],
        }
        self._levels: Dict[LogCategory, LogLevel] = {
            LogCategory.SESSION: LogLevel[session_level.upper()],
            LogCategory.SYSTEM: LogLevel[system_level.upper()],
        }
        self.max_entries = max_entries
        self.echo = echo

        # Console dedup state (system prints only)
        self._last_print_signature: Optional[str] = None
        self._last_print_line: Optional[str] = None
        self._last_print_repeat_count: int = 0

    def session(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "INFO",
    ) -> None:
        """
        Log a session event.

        Args:
            event_type: Type of event (e.g., "cycle_applied", "badge_unlocked").
            data: Event data as dictionary.
            level: Log level (DEBUG, INFO, WARNING, ERROR).
        """
        self._append(LogCategory.SESSION, event_type, data, level)

    def system(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "INFO",
    ) -> None:
        """
        Log a system event.

        Args:
            event_type: Type of event (e.g., "server_started", "classifier_failure").
            data: Event data as dictionary.
            level: Log level (DEBUG, INFO, WARNING, ERROR).
        """
        record = self._append(LogCategory.SYSTEM, event_type, data, level)
        if record is not None and self.echo:
            self._print_log(record)

    def set_level(self, category: str, level: str) -> None:
        """
        Set log level threshold for a category.

        Args:
            category: "session" or "system".
            level: "DEBUG", "INFO", "WARNING", or "ERROR".
        """
        self._levels[self._category(category)] = LogLevel[level.upper()]

    def get_level(self, category: str) -> str:
        return self._levels[self._category(category)].name

    def get_logs(
        self,
        category: str,
        event_type: Optional[str] = None,
        level: Optional[str] = None,
    ) -> List[LogRecord]:
        """
        Retrieve logs of one category with optional filtering.

        Args:
            category: "session" or "system".
            event_type: Filter by event type.
            level: Filter by log level.

        Returns:
            List of matching log records, oldest first.
        """
        logs = self._records[self._category(category)]

        if event_type:
            logs = [r for r in logs if r.event_type == event_type]

        if level:
            logs = [r for r in logs if r.level == level.upper()]

        return list(logs)

    def get_session_logs(self, event_type: Optional[str] = None) -> List[LogRecord]:
        return self.get_logs("session", event_type=event_type)

    def get_system_logs(
        self,
        event_type: Optional[str] = None,
        level: Optional[str] = None,
    ) -> List[LogRecord]:
        return self.get_logs("system", event_type=event_type, level=level)

    def clear_logs(self, category: str = "all") -> None:
        """
        Clear logs.

        Args:
            category: "session", "system", or "all".
        """
        if category.lower() == "all":
            for records in self._records.values():
                records.clear()
            return
        self._records[self._category(category)].clear()

    def export_logs(self, category: str, filepath: str) -> bool:
        """
        Export one category to a CSV file.

        Args:
            category: "session" or "system".
            filepath: Path to export file (".csv" appended if missing).

        Returns:
            True if successful.
        """
        records = self._records[self._category(category)]
        try:
            path = Path(filepath if filepath.endswith(".csv") else f"{filepath}.csv")
            path.parent.mkdir(parents=True, exist_ok=True)

            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(["timestamp", "level", "event_type", "data"])
                for record in records:
                    dt = datetime.fromtimestamp(record.timestamp, tz=timezone.utc)
                    writer.writerow([
                        dt.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
                        record.level,
                        record.event_type,
                        json.dumps(json_safe(record.data), ensure_ascii=False),
                    ])

            self.system(
                f"export_{category.lower()}_logs",
                {"filepath": path, "count": len(records)},
            )
            return True
        except OSError as e:
            self.system(
                f"export_{category.lower()}_logs_error",
                {"error": str(e)},
                level="ERROR",
            )
            return False

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get logging statistics.

        Returns:
            Dictionary with log counts and levels per category.
        """
        stats: Dict[str, Any] = {}
        for category, records in self._records.items():
            by_level: Dict[str, int] = {}
            for record in records:
                by_level[record.level] = by_level.get(record.level, 0) + 1
            stats[category.value] = {
                "total": len(records),
                "by_level": by_level,
                "level_threshold": self._levels[category].name,
            }
        return stats

    # --- Internal Methods ---

    @staticmethod
    def _category(name: str) -> LogCategory:
        try:
            return LogCategory(name.lower())
        except ValueError:
            raise ValueError(f"Unknown category: {name}") from None

    def _append(
        self,
        category: LogCategory,
        event_type: str,
        data: Optional[Dict[str, Any]],
        level: str,
    ) -> Optional[LogRecord]:
        if not self._should_log(level, category):
            return None

        record = LogRecord(
            timestamp=datetime.now(timezone.utc).timestamp(),
            level=level.upper(),
            event_type=event_type,
            data=dict(data) if data else {},
            category=category.value,
        )
        records = self._records[category]
        records.append(record)

        # Rotate if exceeding max entries
        if len(records) > self.max_entries:
            del records[: len(records) - self.max_entries]

        return record

    def _should_log(self, level: str, category: LogCategory) -> bool:
        try:
            level_obj = LogLevel[level.upper()]
        except KeyError:
            return True  # Log unknown levels

        return level_obj.value >= self._levels[category].value

    def _print_log(self, record: LogRecord) -> None:
        timestamp = datetime.fromtimestamp(record.timestamp, tz=timezone.utc).strftime("%H:%M:%S")

        colors = {
            "DEBUG": "\033[36m",
            "INFO": "\033[32m",
            "WARNING": "\033[33m",
            "ERROR": "\033[31m",
        }
        reset = "\033[0m"
        color = colors.get(record.level, "")

        data_obj = json_safe(record.data) if record.data else None
        data_str = json.dumps(data_obj, ensure_ascii=False) if data_obj else ""

        base_line = f"{color}[{timestamp}] [{record.level}] {record.event_type}{reset} {data_str}"

        signature = json.dumps(
            {"level": record.level, "event_type": record.event_type, "data": data_obj},
            sort_keys=True,
        )

        # Same as previous → rewrite the line with a repeat counter
        if signature == self._last_print_signature:
            self._last_print_repeat_count += 1
            updated = f"{base_line} ×{self._last_print_repeat_count}"
            padded = updated.ljust(len(self._last_print_line or ""))
            print(f"\r{padded}", end="", flush=True)
            self._last_print_line = padded
            return

        if self._last_print_signature is not None:
            print()
        print(base_line, end="", flush=True)

        self._last_print_signature = signature
        self._last_print_line = base_line
        self._last_print_repeat_count = 1


# Global logger instance
_logger: Optional[LoggerService] = None


def get_logger() -> LoggerService:
    """
    Get the global logger instance.

    Returns:
        Global LoggerService instance.
    """
    global _logger
    if _logger is None:
        _logger = LoggerService()
    return _logger


def initialize_logger(
    session_level: str = "INFO",
    system_level: str = "INFO",
    echo: bool = True,
) -> LoggerService:
    """
    Initialize the global logger service.

    Args:
        session_level: Log level for session logs.
        system_level: Log level for system logs.
        echo: Print system records to the console.

    Returns:
        Initialized LoggerService instance.
    """
    global _logger
    _logger = LoggerService(
        session_level=session_level,
        system_level=system_level,
        echo=echo,
    )
    return _logger
