"""Environment-driven settings for the attendee importer.

Values come from the process environment, seeded from a ``.env`` file via
python-dotenv without overriding variables that are already set::

    BEVY_EMAIL=""            # login for the event dashboard
    BEVY_PASSWORD=""
    BEVY_EVENT_URL=""        # .../events/<id>/registrations
    PW_HEADLESS=1            # 1=true (headless), 0=false (headed)
    PW_SLOW_MO_MS=0
    AUTH_STATE_PATH=".auth/bevy-auth.json"
    GOOGLE_SHEET_URL=""
    MIN_DELAY_MS=500
    MAX_DELAY_MS=1000
    FAILURES_PATH="import-failures.json"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .models import Credentials

DEFAULT_AUTH_STATE_PATH = ".auth/bevy-auth.json"
DEFAULT_FAILURES_PATH = "import-failures.json"


def getenv_bool(name: str, default: bool = False) -> bool:
    """Return True for 1/true/yes/on (case-insensitive), else False; default when unset."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(float(v))
    except (ValueError, OverflowError):
        return default


@dataclass(frozen=True)
class ThrottleConfig:
    """Inclusive bounds for the randomized pause between two submissions."""

    min_delay_ms: int = 500
    max_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.min_delay_ms < 0 or self.max_delay_ms < 0:
            raise ConfigError("Delay bounds must be non-negative")
        if self.min_delay_ms > self.max_delay_ms:
            raise ConfigError(
                f"MIN_DELAY_MS ({self.min_delay_ms}) is greater than MAX_DELAY_MS ({self.max_delay_ms})"
            )


@dataclass(frozen=True)
class Settings:
    email: str = ""
    password: str = ""
    event_url: str = ""
    headless: bool = True
    slow_mo_ms: int = 0
    auth_state_path: Path = Path(DEFAULT_AUTH_STATE_PATH)
    google_sheet_url: str = ""
    min_delay_ms: int = 500
    max_delay_ms: int = 1000
    failures_path: Path = Path(DEFAULT_FAILURES_PATH)

    @property
    def credentials(self) -> Optional[Credentials]:
        if self.email and self.password:
            return Credentials(email=self.email, password=self.password)
        return None

    @property
    def throttle(self) -> ThrottleConfig:
        return ThrottleConfig(min_delay_ms=self.min_delay_ms, max_delay_ms=self.max_delay_ms)


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """Load settings from ``env_file`` (when present) and the environment."""
    if env_file and Path(env_file).exists():
        load_dotenv(dotenv_path=env_file, override=False)

    return Settings(
        email=os.getenv("BEVY_EMAIL", ""),
        password=os.getenv("BEVY_PASSWORD", ""),
        event_url=os.getenv("BEVY_EVENT_URL", ""),
        headless=getenv_bool("PW_HEADLESS", True),
        slow_mo_ms=getenv_int("PW_SLOW_MO_MS", 0),
        auth_state_path=Path(os.getenv("AUTH_STATE_PATH") or DEFAULT_AUTH_STATE_PATH),
        google_sheet_url=os.getenv("GOOGLE_SHEET_URL", ""),
        min_delay_ms=getenv_int("MIN_DELAY_MS", 500),
        max_delay_ms=getenv_int("MAX_DELAY_MS", 1000),
        failures_path=Path(os.getenv("FAILURES_PATH") or DEFAULT_FAILURES_PATH),
    )


def ensure_auth_dir(auth_state_path: Path | str) -> None:
    """Create the directory that holds the saved authentication state."""
    Path(auth_state_path).parent.mkdir(parents=True, exist_ok=True)


__all__ = [
    "Settings",
    "ThrottleConfig",
    "load_settings",
    "ensure_auth_dir",
    "getenv_bool",
    "getenv_int",
]
