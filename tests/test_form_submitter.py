import asyncio
import logging

import pytest

from attendee_importer.form import (
    MODAL_DID_NOT_CLOSE,
    MODAL_DID_NOT_OPEN,
    AttendeeFormSubmitter,
    FormSelectors,
    FormTimings,
)
from attendee_importer.models import AttendeeRecord, FormState

from fakes import FakePage

SELECTORS = FormSelectors()
ADA = AttendeeRecord("Ada", "Lovelace", "ada@example.com", checked_in=False, row_index=2)


def submit(page: FakePage, record: AttendeeRecord = ADA):
    return asyncio.run(AttendeeFormSubmitter().submit_one(page, record))


def test_happy_path_walks_every_state_in_order() -> None:
    page = FakePage()

    outcome = submit(page)

    assert outcome.succeeded
    assert outcome.reason is None
    assert outcome.final_state is FormState.SUCCEEDED
    assert outcome.transitions == (
        FormState.IDLE,
        FormState.MODAL_OPENING,
        FormState.MODAL_OPEN,
        FormState.FIELDS_CLEARED,
        FormState.FIELDS_FILLED,
        FormState.SUBMITTING,
        FormState.MODAL_CLOSING,
        FormState.SUCCEEDED,
    )


def test_happy_path_page_interactions() -> None:
    page = FakePage()
    timings = FormTimings()

    submit(page)

    assert page.calls == [
        ("click", SELECTORS.add_button),
        ("wait_visible", SELECTORS.modal, timings.modal_timeout_ms),
        ("pause", timings.modal_settle_ms),
        ("fill", SELECTORS.first_name, ""),
        ("fill", SELECTORS.last_name, ""),
        ("fill", SELECTORS.email, ""),
        ("fill", SELECTORS.first_name, "Ada"),
        ("fill", SELECTORS.last_name, "Lovelace"),
        ("fill", SELECTORS.email, "ada@example.com"),
        ("click", SELECTORS.submit_button),
        ("pause", timings.submit_settle_ms),
        ("wait_hidden", SELECTORS.modal, timings.modal_timeout_ms),
        ("pause", timings.post_close_settle_ms),
    ]


def test_modal_open_timeout_fails_before_touching_fields() -> None:
    page = FakePage(visible_timeouts=[True])

    outcome = submit(page)

    assert not outcome.succeeded
    assert outcome.reason == MODAL_DID_NOT_OPEN
    assert outcome.final_state is FormState.FAILED
    assert outcome.failed_at is FormState.MODAL_OPENING
    assert page.calls_named("fill") == []
    assert ("click", SELECTORS.submit_button) not in page.calls


def test_modal_close_timeout_reports_possible_missing_submission() -> None:
    page = FakePage(hidden_timeouts=[True])

    outcome = submit(page)

    assert not outcome.succeeded
    assert outcome.reason == MODAL_DID_NOT_CLOSE
    assert outcome.failed_at is FormState.MODAL_CLOSING
    assert outcome.transitions[-1] is FormState.MODAL_CLOSING


def test_unexpected_error_is_converted_with_step_description() -> None:
    page = FakePage(errors={("fill", SELECTORS.email): RuntimeError("element detached")})

    outcome = submit(page)

    assert not outcome.succeeded
    assert outcome.reason == "clear fields failed: element detached"
    assert outcome.failed_at is FormState.MODAL_OPEN


def test_missing_add_button_fails_from_idle() -> None:
    page = FakePage(errors={("click", SELECTORS.add_button): TimeoutError("no button")})

    outcome = submit(page)

    assert outcome.failed_at is FormState.IDLE
    assert "no button" in outcome.reason
    assert page.calls == [("click", SELECTORS.add_button)]


def test_checked_in_is_never_submitted(caplog: pytest.LogCaptureFixture) -> None:
    page = FakePage()
    record = AttendeeRecord("Grace", "Hopper", "grace@example.com", checked_in=True)

    with caplog.at_level(logging.INFO, logger="attendee_importer"):
        outcome = submit(page, record)

    assert outcome.succeeded
    filled = {call[1] for call in page.calls_named("fill")}
    assert filled == set(SELECTORS.text_inputs)
    assert any("check-in manually" in r.getMessage() for r in caplog.records)


def test_empty_values_are_written_as_is() -> None:
    page = FakePage()

    outcome = submit(page, AttendeeRecord("", "", ""))

    assert outcome.succeeded
    assert page.values == {SELECTORS.first_name: "", SELECTORS.last_name: "", SELECTORS.email: ""}


def test_custom_selectors_and_timings_are_used() -> None:
    selectors = FormSelectors(add_button="#add", modal="#dialog")
    timings = FormTimings(modal_timeout_ms=10, modal_settle_ms=0, submit_settle_ms=0, post_close_settle_ms=0)
    page = FakePage()

    asyncio.run(AttendeeFormSubmitter(selectors, timings).submit_one(page, ADA))

    assert page.calls[0] == ("click", "#add")
    assert ("wait_visible", "#dialog", 10) in page.calls
