"""Attendee sources: local CSV files and Google Sheets CSV exports."""

from __future__ import annotations

import asyncio
import csv
import io
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

import aiohttp

from .errors import SourceError
from .logger import debug_detail
from .models import AttendeeRecord

FIRST_NAME_COLUMNS = ("First Name", "first_name", "FirstName", "firstname", "First", "first")
LAST_NAME_COLUMNS = ("Last Name", "last_name", "LastName", "lastname", "Last", "last")
EMAIL_COLUMNS = ("Email", "email", "Email Address", "email_address")
CHECKED_IN_COLUMNS = (
    "Checked In",
    "checked_in",
    "CheckedIn",
    "checkedin",
    "Check-in",
    "check-in",
    "Attended",
    "attended",
)

TRUTHY_VALUES = frozenset({"yes", "true", "1", "y"})

# The header occupies line 1 of every source.
FIRST_DATA_ROW = 2

_SHEET_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_SHEET_GID_RE = re.compile(r"[#&?]gid=(\d+)")
_HEADER_NOISE_RE = re.compile(r"[\s_\-]+")


class AttendeeSource(Protocol):
    """Provide the attendees for one import run."""

    async def load(self) -> List[AttendeeRecord]:
        """Return every attendee in source order."""


def normalize_boolean(value: Optional[str]) -> bool:
    if not value:
        return False
    return value.strip().lower() in TRUTHY_VALUES


def _normalize_header(name: str) -> str:
    return _HEADER_NOISE_RE.sub("", name).lower()


def pick_column(row: Mapping[str, str], synonyms: Sequence[str]) -> Optional[str]:
    """Return the first non-empty value among ``synonyms``, in priority order.

    Each synonym is tried as an exact header, then ignoring case, spaces,
    underscores and hyphens (so ``FIRST NAME`` matches ``First Name``),
    before the next synonym is considered.
    """
    by_normalized: Dict[str, List[str]] = {}
    for header, value in row.items():
        if isinstance(header, str) and value:
            by_normalized.setdefault(_normalize_header(header), []).append(value)

    for name in synonyms:
        value = row.get(name)
        if value:
            return value
        values = by_normalized.get(_normalize_header(name))
        if values:
            return values[0]
    return None


def map_row(row: Mapping[str, str], row_index: int) -> AttendeeRecord:
    checked_in_raw = pick_column(row, CHECKED_IN_COLUMNS)
    attendee = AttendeeRecord(
        first_name=(pick_column(row, FIRST_NAME_COLUMNS) or "").strip(),
        last_name=(pick_column(row, LAST_NAME_COLUMNS) or "").strip(),
        email=(pick_column(row, EMAIL_COLUMNS) or "").strip(),
        checked_in=normalize_boolean(checked_in_raw),
        row_index=row_index,
    )
    debug_detail(
        f"Row {row_index}: {attendee.first_name} {attendee.last_name} ({attendee.email}) "
        f'- raw checked in "{checked_in_raw or ""}" -> {attendee.checked_in}'
    )
    return attendee


def parse_csv_text(text: str, *, origin: str = "<csv>") -> List[AttendeeRecord]:
    """Parse CSV text with a header row into attendee records.

    Raises :class:`SourceError` for structurally malformed input, including
    rows whose column count differs from the header.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    attendees: List[AttendeeRecord] = []
    try:
        header: Optional[List[str]] = None
        for cells in reader:
            if not cells:
                continue
            if header is None:
                header = [cell.strip() for cell in cells]
                continue
            if len(cells) != len(header):
                raise SourceError(
                    f"{origin}: line {reader.line_num} has {len(cells)} columns, expected {len(header)}"
                )
            row = {name: cell.strip() for name, cell in zip(header, cells)}
            attendees.append(map_row(row, FIRST_DATA_ROW + len(attendees)))
    except csv.Error as exc:
        raise SourceError(f"{origin}: malformed CSV near line {reader.line_num}: {exc}") from exc
    return attendees


def parse_csv_file(path: Path | str) -> List[AttendeeRecord]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceError(f"Cannot read CSV file {path}: {exc}") from exc
    return parse_csv_text(text, origin=str(path))


def is_google_sheet_url(location: str) -> bool:
    return location.startswith(("http://", "https://")) and bool(_SHEET_ID_RE.search(location))


def to_csv_export_url(sheet_url: str) -> str:
    """Turn a Google Sheets link into its CSV export URL (first tab unless ``gid`` is given)."""
    match = _SHEET_ID_RE.search(sheet_url)
    if not match:
        return sheet_url
    gid_match = _SHEET_GID_RE.search(sheet_url)
    gid = gid_match.group(1) if gid_match else "0"
    return f"https://docs.google.com/spreadsheets/d/{match.group(1)}/export?format=csv&gid={gid}"


async def fetch_csv(url: str, session: Optional[aiohttp.ClientSession] = None, timeout_s: float = 30) -> str:
    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout_s))
    try:
        async with session.get(url) as response:
            if not 200 <= response.status < 300:
                raise SourceError(f"Failed to fetch sheet: {response.status} {response.reason or ''}".rstrip())
            return await response.text(encoding="utf-8")
    except asyncio.TimeoutError as exc:
        raise SourceError(f"Timed out fetching sheet from {url}") from exc
    except aiohttp.ClientError as exc:
        raise SourceError(f"Failed to fetch sheet from {url}: {exc}") from exc
    finally:
        if owns_session:
            await session.close()


async def parse_google_sheet(
    sheet_url: str, session: Optional[aiohttp.ClientSession] = None
) -> List[AttendeeRecord]:
    export_url = to_csv_export_url(sheet_url)
    debug_detail(f"Fetching sheet export {export_url}")
    text = await fetch_csv(export_url, session=session)
    return parse_csv_text(text, origin=export_url)


class CsvFileSource:
    """Read attendees from a CSV file on disk."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    async def load(self) -> List[AttendeeRecord]:
        return parse_csv_file(self._path)


class GoogleSheetSource:
    """Read attendees from a Google Sheets tab through its CSV export."""

    def __init__(self, sheet_url: str, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._sheet_url = sheet_url
        self._session = session

    async def load(self) -> List[AttendeeRecord]:
        return await parse_google_sheet(self._sheet_url, session=self._session)


def source_for(location: str) -> AttendeeSource:
    if is_google_sheet_url(location):
        return GoogleSheetSource(location)
    return CsvFileSource(location)


async def load_attendees(location: str) -> List[AttendeeRecord]:
    """Load attendees from a CSV path or a Google Sheets URL."""
    return await source_for(location).load()


__all__ = [
    "AttendeeSource",
    "CsvFileSource",
    "GoogleSheetSource",
    "normalize_boolean",
    "pick_column",
    "parse_csv_text",
    "parse_csv_file",
    "parse_google_sheet",
    "to_csv_export_url",
    "is_google_sheet_url",
    "load_attendees",
    "source_for",
]
