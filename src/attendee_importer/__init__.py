"""Bulk attendee import into an event dashboard through a real browser."""

from .errors import ConfigError, RecordError, SessionError, SourceError
from .form import AttendeeFormSubmitter
from .models import AttendeeRecord, FormState, ImportOutcome, ImportResult
from .orchestrator import BatchOrchestrator, run_importer
from .session import SessionConfig, SessionManager
from .sources import load_attendees

__all__ = [
    "AttendeeRecord",
    "AttendeeFormSubmitter",
    "BatchOrchestrator",
    "ConfigError",
    "FormState",
    "ImportOutcome",
    "ImportResult",
    "RecordError",
    "SessionConfig",
    "SessionError",
    "SessionManager",
    "SourceError",
    "load_attendees",
    "run_importer",
]
