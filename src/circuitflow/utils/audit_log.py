"""Audit trail of path switch-overs.

Every switch attempt, successful or not, becomes one JSON line in a rotating
audit file written through the ``circuitflow.audit`` logger:

    {"timestamp": "...", "circuit_id": 100, "operation": "change_path",
     "user": "noc", "success": true, "previous_path": "primary",
     "active_path": "backup", "committed": true, "error": null}

Nothing is written until setup_audit_logging() (or setup_logging()) has
attached the file handler.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from ..circuit.schema import PathSwitchResult

audit_logger = logging.getLogger("circuitflow.audit")

AUDIT_FILE_NAME = "audit.log"


def default_audit_dir() -> str:
    return os.path.expanduser("~/.circuitflow")


def default_audit_file() -> str:
    return os.path.join(default_audit_dir(), AUDIT_FILE_NAME)


def setup_audit_logging(log_dir: Optional[str] = None) -> str:
    """Send audit records to <log_dir>/audit.log.

    Calling it again replaces the previous file handler.

    Args:
        log_dir: Directory for the audit log. Defaults to ~/.circuitflow/

    Returns:
        Path of the audit log file
    """
    log_dir = log_dir or default_audit_dir()
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = os.path.join(log_dir, AUDIT_FILE_NAME)

    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    audit_logger.setLevel(logging.INFO)
    audit_logger.addHandler(handler)
    # audit lines stay out of the console and main log
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """One audited path switch attempt."""
    timestamp: str
    circuit_id: int
    operation: str
    user: str
    success: bool
    previous_path: Optional[str] = None
    active_path: Optional[str] = None
    committed: bool = False
    error: Optional[str] = None

    @classmethod
    def from_result(
        cls,
        result: "PathSwitchResult",
        user: str,
        operation: str = "change_path",
    ) -> "ChangeRecord":
        data = result.to_dict()
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            circuit_id=data["circuit_id"],
            operation=operation,
            user=user,
            success=data["success"],
            previous_path=data["previous_path"],
            active_path=data["active_path"],
            committed=data["committed"],
            error=data["error"],
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, line: str) -> "ChangeRecord":
        return cls(**json.loads(line))


class ChangeTracker:
    """Writes the audit records of one user's switch attempts."""

    def __init__(self, user: str = "system"):
        self.user = user

    def log_switch(
        self,
        result: "PathSwitchResult",
        operation: str = "change_path",
    ) -> ChangeRecord:
        """Audit a switch attempt from its result."""
        record = ChangeRecord.from_result(result, self.user, operation)
        audit_logger.info(record.to_json())
        return record


def _read_records(log_file: str) -> Iterator[ChangeRecord]:
    with open(log_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue


def get_recent_changes(
    log_file: Optional[str] = None,
    circuit_id: Optional[int] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read audited switches, most recent first.

    Args:
        log_file: Audit log to read. Defaults to ~/.circuitflow/audit.log
        circuit_id: Only this circuit
        operation: Only this operation
        limit: Maximum number of records

    Returns:
        Matching records; empty when the log does not exist
    """
    log_file = log_file or default_audit_file()
    if not os.path.exists(log_file):
        return []

    records = [
        record for record in _read_records(log_file)
        if (circuit_id is None or record.circuit_id == circuit_id)
        and (operation is None or record.operation == operation)
    ]
    return records[::-1][:limit]
