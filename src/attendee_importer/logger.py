"""Console logging for the attendee importer.

Every record carries a ``layer`` that decides its console prefix. Besides the
generic workflow layers (step, progress, success, warning, error, debug) there
is one layer per attendee outcome, so a batch run reads as a column of
``+``/``x`` lines that can be grepped from ``LOG_FILE`` as well.

Environment:

    LOG_PROFILE   quiet | user (default) | debug | verbose
    LOG_LEVEL     explicit console level, overrides the profile
    LOG_FILE      also write every record (DEBUG and up) to this file
    NO_COLOR      disable ANSI colours
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "logger",
    "step",
    "progress",
    "success",
    "debug_detail",
    "record_added",
    "record_failed",
    "get_logger",
    "set_log_profile",
]

ROOT_LOGGER_NAME = "attendee_importer"

LOG_PROFILE = (os.getenv("LOG_PROFILE") or "user").lower()
LOG_FILE = os.getenv("LOG_FILE")
NO_COLOR = os.getenv("NO_COLOR") is not None
LOG_LEVEL_OVERRIDE = os.getenv("LOG_LEVEL")

_PROFILE_LEVELS = {
    "quiet": logging.WARNING,
    "user": logging.INFO,
    "debug": logging.DEBUG,
    "verbose": logging.DEBUG,
}

_ANSI = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "blue": "\033[34m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "cyan": "\033[36m",
}

# layer -> (prefix, ansi styles)
LAYERS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "step": ("==>", ("blue", "bold")),
    "progress": ("...", ("cyan",)),
    "success": ("ok", ("green", "bold")),
    "record_added": ("+", ("green",)),
    "record_failed": ("x", ("red", "bold")),
    "warning": ("!", ("yellow", "bold")),
    "error": ("ERR", ("red", "bold")),
    "debug": ("[debug]", ("dim",)),
    "user": ("", ()),
}


def _paint(text: str, styles: Tuple[str, ...]) -> str:
    if NO_COLOR or not styles or not text:
        return text
    return "".join(_ANSI[s] for s in styles) + text + _ANSI["reset"]


class LayeredFormatter(logging.Formatter):
    """Prefix each console line according to ``record.layer``."""

    def format(self, record: logging.LogRecord) -> str:
        prefix, styles = LAYERS.get(getattr(record, "layer", "user"), LAYERS["user"])
        message = super().format(record)
        if not prefix:
            return message
        return f"{_paint(prefix, styles)} {message}"


class LayeredAdapter(logging.LoggerAdapter):
    """Logger adapter that accepts ``layer=`` on every call."""

    def __init__(self, logger: logging.Logger, default_layer: str = "user"):
        super().__init__(logger, {"layer": default_layer})

    def log(self, level: int, msg: Any, *args, layer: Optional[str] = None, **kwargs) -> None:
        if not self.isEnabledFor(level):
            return
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("layer", layer or self.extra.get("layer", "user"))
        self.logger.log(level, msg, *args, **kwargs)

    def warning(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "warning")
        super().warning(msg, *args, **kwargs)

    def error(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "error")
        super().error(msg, *args, **kwargs)

    def exception(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "error")
        super().exception(msg, *args, **kwargs)


def _console_level(profile: str) -> int:
    level = _PROFILE_LEVELS.get(profile, logging.INFO)
    if LOG_LEVEL_OVERRIDE:
        override = logging.getLevelName(LOG_LEVEL_OVERRIDE.upper())
        if isinstance(override, int):
            level = override
    return level


def _configure() -> LayeredAdapter:
    base = logging.getLogger(ROOT_LOGGER_NAME)
    if base.handlers:
        return LayeredAdapter(base)
    base.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.set_name("console")
    console.setLevel(_console_level(LOG_PROFILE))
    console.setFormatter(LayeredFormatter("%(message)s"))
    base.addHandler(console)

    if LOG_FILE:
        try:
            file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
        except OSError as exc:
            base.warning("Failed to open log file '%s': %s", LOG_FILE, exc)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
            )
            base.addHandler(file_handler)

    return LayeredAdapter(base)


logger = _configure()


def step(message: str) -> None:
    """A major phase of the run (parse, launch, import)."""
    logger.log(logging.INFO, message, layer="step")


def progress(message: str) -> None:
    logger.log(logging.INFO, message, layer="progress")


def success(message: str) -> None:
    logger.log(logging.INFO, message, layer="success")


def debug_detail(message: str) -> None:
    """Per-row and per-transition detail, shown only with the debug profiles."""
    logger.log(logging.DEBUG, message, layer="debug")


def record_added(adapter: LayeredAdapter, position: str, name: str) -> None:
    adapter.log(logging.INFO, f"Added attendee {position}: {name}", layer="record_added")


def record_failed(adapter: LayeredAdapter, position: str, name: str, reason: str) -> None:
    adapter.log(logging.ERROR, f"Failed attendee {position}: {name} - {reason}", layer="record_failed")


def get_logger(name: str, *, layer: str = "user") -> LayeredAdapter:
    """Child of the package logger, e.g. ``attendee_importer.session``."""
    return LayeredAdapter(logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}"), default_layer=layer)


def set_log_profile(profile: str) -> None:
    """Change console verbosity at runtime (``--log-profile``)."""
    global LOG_PROFILE
    LOG_PROFILE = (profile or "user").lower()
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        if handler.get_name() == "console":
            handler.setLevel(_console_level(LOG_PROFILE))
    os.environ["LOG_PROFILE"] = LOG_PROFILE
