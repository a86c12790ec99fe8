"""Domain objects shared by the source, the form submitter and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FormState(str, Enum):
    """States of the add-attendee form for a single record."""

    IDLE = "idle"
    MODAL_OPENING = "modal_opening"
    MODAL_OPEN = "modal_open"
    FIELDS_CLEARED = "fields_cleared"
    FIELDS_FILLED = "fields_filled"
    SUBMITTING = "submitting"
    MODAL_CLOSING = "modal_closing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class AttendeeRecord:
    """Value object representing one attendee row to import."""

    first_name: str
    last_name: str
    email: str
    checked_in: bool = False
    row_index: Optional[int] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email or "<unnamed>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "checkedIn": self.checked_in,
            "rowIndex": self.row_index,
        }


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str


@dataclass(frozen=True)
class ImportOutcome:
    """Result of submitting a single record: success, or failure with a reason."""

    succeeded: bool
    reason: Optional[str] = None
    final_state: Optional[FormState] = None
    failed_at: Optional[FormState] = None
    transitions: Tuple[FormState, ...] = ()

    @classmethod
    def success(cls, transitions: Tuple[FormState, ...] = ()) -> "ImportOutcome":
        return cls(succeeded=True, final_state=FormState.SUCCEEDED, transitions=transitions)

    @classmethod
    def failure(
        cls,
        reason: str,
        failed_at: Optional[FormState] = None,
        transitions: Tuple[FormState, ...] = (),
    ) -> "ImportOutcome":
        return cls(
            succeeded=False,
            reason=reason,
            final_state=FormState.FAILED,
            failed_at=failed_at,
            transitions=transitions,
        )


@dataclass
class ImportStats:
    total: int = 0
    success: int = 0
    failed: int = 0
    retried: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "retried": self.retried,
        }


@dataclass(frozen=True)
class RecordFailure:
    attendee: AttendeeRecord
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {"attendee": self.attendee.to_dict(), "error": self.error}


@dataclass
class ImportResult:
    """Aggregate outcome of one batch run, built incrementally."""

    stats: ImportStats = field(default_factory=ImportStats)
    successes: List[AttendeeRecord] = field(default_factory=list)
    errors: List[RecordFailure] = field(default_factory=list)

    @classmethod
    def for_batch(cls, total: int) -> "ImportResult":
        return cls(stats=ImportStats(total=total))

    def record(self, attendee: AttendeeRecord, outcome: ImportOutcome) -> None:
        if outcome.succeeded:
            self.stats.success += 1
            self.successes.append(attendee)
        else:
            self.stats.failed += 1
            self.errors.append(RecordFailure(attendee=attendee, error=outcome.reason or "unknown error"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "successes": [attendee.to_dict() for attendee in self.successes],
            "errors": [failure.to_dict() for failure in self.errors],
        }


__all__ = [
    "FormState",
    "AttendeeRecord",
    "Credentials",
    "ImportOutcome",
    "ImportStats",
    "RecordFailure",
    "ImportResult",
]
