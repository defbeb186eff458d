"""Logging, timing and audit helpers."""
from .audit_log import (
    ChangeRecord,
    ChangeTracker,
    get_recent_changes,
    setup_audit_logging,
)
from .logging_config import (
    reset_logging,
    setup_logging,
    timed,
    timed_section_sync,
    perf_logger,
)

__all__ = [
    "ChangeRecord",
    "ChangeTracker",
    "get_recent_changes",
    "setup_audit_logging",
    "reset_logging",
    "setup_logging",
    "timed",
    "timed_section_sync",
    "perf_logger",
]
