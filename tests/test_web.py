import asyncio
import json
from pathlib import Path
from typing import List

import aiohttp
from aiohttp import test_utils

from attendee_importer.config import Settings
from attendee_importer.errors import SessionError
from attendee_importer.models import AttendeeRecord, ImportOutcome, ImportResult
from attendee_importer.web import create_app

EVENT_URL = "https://events.example.com/dashboard/events/4199/registrations"
CSV = "First Name,Last Name,Email\nAda,Lovelace,ada@example.com\nAlan,Turing,alan@example.com\n"


class FakeRunner:
    def __init__(self, fail_emails=(), error=None) -> None:
        self.fail_emails = set(fail_emails)
        self.error = error
        self.calls: List[tuple] = []

    async def __call__(self, attendees, event_url) -> ImportResult:
        self.calls.append((list(attendees), event_url))
        if self.error is not None:
            raise self.error
        result = ImportResult.for_batch(len(attendees))
        for attendee in attendees:
            if attendee.email in self.fail_emails:
                result.record(attendee, ImportOutcome.failure("modal did not open"))
            else:
                result.record(attendee, ImportOutcome.success())
        return result


def upload_form(csv_text=CSV, event_url=EVENT_URL) -> aiohttp.FormData:
    form = aiohttp.FormData()
    if event_url is not None:
        form.add_field("eventUrl", event_url)
    if csv_text is not None:
        form.add_field("csvFile", csv_text.encode("utf-8"), filename="attendees.csv", content_type="text/csv")
    return form


def run_client(app, scenario):
    async def runner():
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            return await scenario(client)

    return asyncio.run(runner())


def make_app(tmp_path: Path, runner: FakeRunner):
    return create_app(Settings(failures_path=tmp_path / "failures.json"), runner=runner)


def test_index_serves_upload_page(tmp_path: Path) -> None:
    async def scenario(client):
        response = await client.get("/")
        return response.status, await response.text()

    status, body = run_client(make_app(tmp_path, FakeRunner()), scenario)

    assert status == 200
    assert 'name="csvFile"' in body


def test_import_runs_and_returns_result(tmp_path: Path) -> None:
    runner = FakeRunner(fail_emails={"alan@example.com"})

    async def scenario(client):
        response = await client.post("/import", data=upload_form())
        return await response.json()

    data = run_client(make_app(tmp_path, runner), scenario)

    assert data["success"] is True
    assert data["result"]["stats"] == {"total": 2, "success": 1, "failed": 1, "retried": 0}
    assert data["result"]["errors"][0]["attendee"]["email"] == "alan@example.com"
    [(attendees, event_url)] = runner.calls
    assert event_url == EVENT_URL
    assert attendees[0] == AttendeeRecord("Ada", "Lovelace", "ada@example.com", False, 2)
    exported = json.loads((tmp_path / "failures.json").read_text(encoding="utf-8"))
    assert exported[0]["error"] == "modal did not open"


def test_import_requires_event_url(tmp_path: Path) -> None:
    runner = FakeRunner()

    async def scenario(client):
        response = await client.post("/import", data=upload_form(event_url=None))
        return await response.json()

    assert run_client(make_app(tmp_path, runner), scenario) == {"success": False, "error": "Event URL is required"}
    assert runner.calls == []


def test_import_requires_csv_file(tmp_path: Path) -> None:
    async def scenario(client):
        response = await client.post("/import", data={"eventUrl": EVENT_URL})
        return await response.json()

    data = run_client(make_app(tmp_path, FakeRunner()), scenario)

    assert data == {"success": False, "error": "CSV file is required"}


def test_import_rejects_empty_csv(tmp_path: Path) -> None:
    async def scenario(client):
        response = await client.post("/import", data=upload_form(csv_text="First Name,Email\n"))
        return await response.json()

    data = run_client(make_app(tmp_path, FakeRunner()), scenario)

    assert data == {"success": False, "error": "No attendees found in CSV file"}


def test_import_reports_fatal_errors(tmp_path: Path) -> None:
    runner = FakeRunner(error=SessionError("Login failed: bad password"))

    async def scenario(client):
        response = await client.post("/import", data=upload_form())
        return await response.json()

    data = run_client(make_app(tmp_path, runner), scenario)

    assert data == {"success": False, "error": "Login failed: bad password"}


def test_download_failures_missing_is_404(tmp_path: Path) -> None:
    async def scenario(client):
        response = await client.get("/download-failures")
        return response.status, await response.text()

    status, body = run_client(make_app(tmp_path, FakeRunner()), scenario)

    assert status == 404
    assert body == "No failure data found"


def test_download_failures_serves_attachment(tmp_path: Path) -> None:
    (tmp_path / "failures.json").write_text("[]", encoding="utf-8")

    async def scenario(client):
        response = await client.get("/download-failures")
        return response.status, response.headers.get("Content-Disposition"), await response.text()

    status, disposition, body = run_client(make_app(tmp_path, FakeRunner()), scenario)

    assert status == 200
    assert "attachment" in disposition
    assert body == "[]"


def test_import_reports_unexpected_errors_as_json(tmp_path: Path) -> None:
    runner = FakeRunner(error=RuntimeError("Target page, context or browser has been closed"))

    async def scenario(client):
        response = await client.post("/import", data=upload_form())
        return response.status, await response.json()

    status, data = run_client(make_app(tmp_path, runner), scenario)

    assert status == 200
    assert data == {"success": False, "error": "Target page, context or browser has been closed"}
