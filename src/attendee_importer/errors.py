"""Error taxonomy for the attendee importer.

Only :class:`SourceError`, :class:`SessionError` and :class:`ConfigError`
stop a run. :class:`RecordError` never leaves the form submitter and
:class:`PersistenceWarning` is emitted through :mod:`warnings`.
"""

from __future__ import annotations

from typing import Optional

from .models import FormState


class ImporterError(RuntimeError):
    """Base class for fatal importer errors."""


class ConfigError(ImporterError):
    """Settings are missing or inconsistent."""


class SourceError(ImporterError):
    """The attendee source could not be read or parsed."""


class SessionError(ImporterError):
    """The target site could not be reached or the login failed."""


class RecordError(Exception):
    """A single attendee could not be submitted."""

    def __init__(self, message: str, state: Optional[FormState] = None) -> None:
        super().__init__(message)
        self.state = state


class PersistenceWarning(UserWarning):
    """Saved authentication state was unusable; continuing without it."""


__all__ = [
    "ImporterError",
    "ConfigError",
    "SourceError",
    "SessionError",
    "RecordError",
    "PersistenceWarning",
]
