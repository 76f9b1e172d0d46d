"""Audit logging for configuration changes.

Every applied command produces one JSON line:
- Timestamped entries for all configuration modifications
- Mode (online/offline) and the command's parameters
- Outcome and error cause
- Separate audit log file
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Create dedicated audit logger
audit_logger = logging.getLogger("servercraft.audit")


def default_audit_file() -> str:
    return os.path.expanduser("~/.servercraft/audit.log")


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.servercraft/
    """
    if log_dir is None:
        log_dir = os.path.expanduser("~/.servercraft")

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        os.path.join(log_dir, "audit.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )

    # Use JSON format for machine-readability
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to root logger
    audit_logger.propagate = False


@dataclass
class ChangeRecord:
    """Record of an applied command."""
    timestamp: str
    server_id: str
    operation: str  # AddQueue, RemoveCache, ...
    mode: str  # online, offline
    user: str
    success: bool
    parameters: dict
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string (enums and other objects as text)."""
        return json.dumps(asdict(self), indent=None, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log configuration changes for one server."""

    def __init__(self, server_id: str, user: str = "system"):
        self.server_id = server_id
        self.user = user

    def log_change(
        self,
        operation: str,
        mode: str,
        parameters: dict,
        success: bool,
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """Log a configuration change.

        Args:
            operation: The command applied (e.g., "AddQueue")
            mode: "online" or "offline"
            parameters: Parameters of the command
            success: Whether the command succeeded
            error: Error message if failed

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            server_id=self.server_id,
            operation=operation,
            mode=mode,
            user=self.user,
            success=success,
            parameters=parameters,
            error=error,
        )

        audit_logger.info(record.to_json())

        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    server_id: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.servercraft/audit.log
        server_id: Filter by server ID
        operation: Filter by command name
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = default_audit_file()

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if server_id and record.server_id != server_id:
                continue
            if operation and record.operation != operation:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
