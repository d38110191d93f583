"""Activity logging for rubyswitch.

Every environment switch, gem install and failed activation is written as a
JSON line to ``<settings dir>/logs/activity.log``, so that a user can find
out later which Ruby a tool was started with.
"""

import getpass
import json
import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .config import default_config_dir


class ActivityEventType(Enum):
    """Types of events recorded in the activity log."""
    ACTIVATION = "activation"
    DEACTIVATION = "deactivation"
    GEM_INSTALL = "gem_install"
    CONFIGURATION_CHANGE = "configuration_change"
    ERROR = "error"


class ActivityLogger:
    """Writes structured activity entries to a log file."""

    def __init__(self, log_dir: Optional[Path] = None) -> None:
        """Initialize activity logger.

        Args:
            log_dir: Directory for the log. Defaults to ``<settings dir>/logs``.
        """
        if log_dir is None:
            log_dir = default_config_dir() / "logs"

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.log_dir, 0o700)

        self.activity_log_file = self.log_dir / "activity.log"
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Configure the file handler of the activity logger."""
        self.logger = logging.getLogger('rubyswitch_activity')
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        # One activity log per process; the previous owner closes its own handler
        self.logger.handlers.clear()

        if not self.activity_log_file.exists():
            self.activity_log_file.touch()
        os.chmod(self.activity_log_file, 0o600)

        self._handler = logging.FileHandler(self.activity_log_file)
        self._handler.setLevel(logging.INFO)
        self._handler.setFormatter(logging.Formatter('%(message)s'))
        self.logger.addHandler(self._handler)

    def close(self) -> None:
        """Close this logger's file handler."""
        self._handler.close()
        self.logger.removeHandler(self._handler)

    def _create_log_entry(
        self,
        event_type: ActivityEventType,
        message: str,
        identifier: Optional[str] = None,
        path: Optional[str] = None,
        result: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: str = "INFO"
    ) -> Dict[str, Any]:
        """Create a structured log entry.

        Args:
            event_type: Type of event
            message: Log message
            identifier: Ruby identifier involved
            path: File or directory the event was triggered for
            result: Result of the action (SUCCESS, FAILURE, etc.)
            details: Additional details as dictionary
            severity: Log severity level

        Returns:
            Structured log entry as dictionary
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.value,
            "severity": severity,
            "message": message,
            "user": self.get_user(),
            "source": "rubyswitch",
            "version": __version__,
        }

        if identifier:
            entry["identifier"] = identifier
        if path:
            entry["path"] = path
        if result:
            entry["result"] = result
        if details:
            entry["details"] = details

        return entry

    def log_activation(self, identifier: str, path: Optional[str] = None,
                       details: Optional[Dict[str, Any]] = None) -> None:
        entry = self._create_log_entry(
            event_type=ActivityEventType.ACTIVATION,
            message=f"Activated {identifier}",
            identifier=identifier,
            path=path,
            result="SUCCESS",
            details=details
        )
        self._write_entry(entry)

    def log_deactivation(self, previous: Optional[str] = None) -> None:
        entry = self._create_log_entry(
            event_type=ActivityEventType.DEACTIVATION,
            message="Cleared Ruby environment",
            identifier=previous,
            result="SUCCESS"
        )
        self._write_entry(entry)

    def log_gem_install(self, gem: str, identifier: str, log_file: str) -> None:
        entry = self._create_log_entry(
            event_type=ActivityEventType.GEM_INSTALL,
            message=f"Started installation of {gem} into {identifier}",
            identifier=identifier,
            result="STARTED",
            details={"gem": gem, "output": log_file}
        )
        self._write_entry(entry)

    def log_configuration_change(self, setting: str, old_value: Any, new_value: Any) -> None:
        entry = self._create_log_entry(
            event_type=ActivityEventType.CONFIGURATION_CHANGE,
            message=f"Configuration change: {setting}",
            result="SUCCESS",
            details={"setting": setting, "old_value": old_value, "new_value": new_value}
        )
        self._write_entry(entry)

    def log_error(self, error_type: str, error_message: str,
                  identifier: Optional[str] = None, path: Optional[str] = None) -> None:
        """Log a failed operation.

        Args:
            error_type: Exception class name or short category
            error_message: Error message
            identifier: Ruby identifier involved
            path: Path the operation was started for
        """
        entry = self._create_log_entry(
            event_type=ActivityEventType.ERROR,
            message=f"Error: {error_type}",
            identifier=identifier,
            path=path,
            result="FAILURE",
            details={"error_type": error_type, "error_message": error_message},
            severity="ERROR"
        )
        self._write_entry(entry)

    def _write_entry(self, entry: Dict[str, Any]) -> None:
        self.logger.info(json.dumps(entry, default=str))

    def get_user(self) -> str:
        """Get current user identifier."""
        user = os.environ.get('USER') or os.environ.get('USERNAME')
        if user:
            return user
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return "unknown"

