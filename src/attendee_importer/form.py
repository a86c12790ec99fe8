"""Add-attendee modal workflow for a single record.

Each record walks the states below; every edge either advances to the next
state or ends in ``FAILED`` with a reason::

    IDLE -> MODAL_OPENING -> MODAL_OPEN -> FIELDS_CLEARED -> FIELDS_FILLED
         -> SUBMITTING -> MODAL_CLOSING -> SUCCEEDED

``submit_one`` never raises for a record-level problem; the batch keeps going.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Tuple

from .browser import PageDriver, WaitTimeout
from .errors import RecordError
from .logger import debug_detail, get_logger
from .models import AttendeeRecord, FormState, ImportOutcome

logger = get_logger("form")

MODAL_DID_NOT_OPEN = "modal did not open"
MODAL_DID_NOT_CLOSE = "modal did not close — submission may not have registered"


@dataclass(frozen=True)
class FormSelectors:
    add_button: str = 'button:has-text("Add attendee")'
    modal: str = 'div[class*="modal"]'
    first_name: str = 'input[name="first_name"]'
    last_name: str = 'input[name="last_name"]'
    email: str = 'input[name="email"]'
    submit_button: str = 'button[aria-label="Add"][type="button"]'

    @property
    def text_inputs(self) -> Tuple[str, str, str]:
        return (self.first_name, self.last_name, self.email)


@dataclass(frozen=True)
class FormTimings:
    modal_timeout_ms: int = 5_000
    modal_settle_ms: int = 1_000
    submit_settle_ms: int = 1_000
    post_close_settle_ms: int = 500


Step = Callable[[PageDriver, AttendeeRecord], Awaitable[None]]


@dataclass
class _Transition:
    source: FormState
    target: FormState
    label: str
    run: Step


@dataclass
class AttendeeFormSubmitter:
    """Drive the add-attendee modal for one record at a time."""

    selectors: FormSelectors = field(default_factory=FormSelectors)
    timings: FormTimings = field(default_factory=FormTimings)

    def transitions(self) -> List[_Transition]:
        return [
            _Transition(FormState.IDLE, FormState.MODAL_OPENING, "open add-attendee modal", self._open_modal),
            _Transition(FormState.MODAL_OPENING, FormState.MODAL_OPEN, "wait for modal", self._await_modal_open),
            _Transition(FormState.MODAL_OPEN, FormState.FIELDS_CLEARED, "clear fields", self._clear_fields),
            _Transition(FormState.FIELDS_CLEARED, FormState.FIELDS_FILLED, "fill fields", self._fill_fields),
            _Transition(FormState.FIELDS_FILLED, FormState.SUBMITTING, "submit form", self._submit),
            _Transition(FormState.SUBMITTING, FormState.MODAL_CLOSING, "settle after submit", self._settle),
            _Transition(FormState.MODAL_CLOSING, FormState.SUCCEEDED, "wait for modal to close", self._await_modal_closed),
        ]

    async def submit_one(self, page: PageDriver, record: AttendeeRecord) -> ImportOutcome:
        history: List[FormState] = [FormState.IDLE]
        for transition in self.transitions():
            try:
                await transition.run(page, record)
            except RecordError as exc:
                return self._fail(record, str(exc), exc.state or transition.source, history)
            except Exception as exc:
                return self._fail(record, f"{transition.label} failed: {exc}", transition.source, history)
            debug_detail(f"{record.display_name}: {transition.source.value} -> {transition.target.value}")
            history.append(transition.target)
        return ImportOutcome.success(tuple(history))

    def _fail(
        self, record: AttendeeRecord, reason: str, state: FormState, history: List[FormState]
    ) -> ImportOutcome:
        debug_detail(f"{record.display_name}: {state.value} -> {FormState.FAILED.value} ({reason})")
        return ImportOutcome.failure(reason, failed_at=state, transitions=tuple(history))

    # ------------------------------------------------------------------
    # Steps

    async def _open_modal(self, page: PageDriver, record: AttendeeRecord) -> None:
        await page.click(self.selectors.add_button)

    async def _await_modal_open(self, page: PageDriver, record: AttendeeRecord) -> None:
        try:
            await page.wait_for_visible(self.selectors.modal, self.timings.modal_timeout_ms)
        except WaitTimeout as exc:
            raise RecordError(MODAL_DID_NOT_OPEN, FormState.MODAL_OPENING) from exc
        await page.pause(self.timings.modal_settle_ms)

    async def _clear_fields(self, page: PageDriver, record: AttendeeRecord) -> None:
        # Inputs may still hold text from an aborted previous record.
        for selector in self.selectors.text_inputs:
            await page.fill(selector, "")

    async def _fill_fields(self, page: PageDriver, record: AttendeeRecord) -> None:
        await page.fill(self.selectors.first_name, record.first_name)
        await page.fill(self.selectors.last_name, record.last_name)
        await page.fill(self.selectors.email, record.email)
        debug_detail(f"Filled: {record.first_name} {record.last_name} - {record.email}")
        if record.checked_in:
            logger.info(f"{record.display_name} is checked in; tick check-in manually later.")

    async def _submit(self, page: PageDriver, record: AttendeeRecord) -> None:
        await page.click(self.selectors.submit_button)

    async def _settle(self, page: PageDriver, record: AttendeeRecord) -> None:
        await page.pause(self.timings.submit_settle_ms)

    async def _await_modal_closed(self, page: PageDriver, record: AttendeeRecord) -> None:
        try:
            await page.wait_for_hidden(self.selectors.modal, self.timings.modal_timeout_ms)
        except WaitTimeout as exc:
            raise RecordError(MODAL_DID_NOT_CLOSE, FormState.MODAL_CLOSING) from exc
        await page.pause(self.timings.post_close_settle_ms)


__all__ = [
    "FormSelectors",
    "FormTimings",
    "AttendeeFormSubmitter",
    "MODAL_DID_NOT_OPEN",
    "MODAL_DID_NOT_CLOSE",
]
