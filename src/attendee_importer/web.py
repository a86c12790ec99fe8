"""Small upload front end: pick a CSV, give the event URL, run the import."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

from aiohttp import web

from .config import Settings, ensure_auth_dir
from .errors import ImporterError
from .logger import get_logger
from .models import AttendeeRecord, ImportResult
from .orchestrator import run_importer
from .report import write_failures
from .session import SessionConfig
from .sources import parse_csv_text

logger = get_logger("web")

ImportRunner = Callable[[List[AttendeeRecord], str], Awaitable[ImportResult]]

SETTINGS_KEY = web.AppKey("settings", Settings)
RUNNER_KEY: web.AppKey[ImportRunner] = web.AppKey("runner")
LOCK_KEY = web.AppKey("import_lock", asyncio.Lock)

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Attendee Importer</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; }
    label { display: block; margin: 16px 0 5px; font-weight: 600; }
    input { width: 100%; padding: 10px; border: 1px solid #ddd; border-radius: 4px; }
    button { margin-top: 20px; background: #007bff; color: white; padding: 12px 24px; border: none; border-radius: 4px; cursor: pointer; }
    button:disabled { background: #6c757d; }
    .error { color: #dc3545; } .success { color: #28a745; }
  </style>
</head>
<body>
  <h1>Attendee Importer</h1>
  <form id="importForm" enctype="multipart/form-data">
    <label for="eventUrl">Event URL *</label>
    <input type="url" id="eventUrl" name="eventUrl" required placeholder="https://.../events/1234/registrations">
    <label for="csvFile">CSV File *</label>
    <input type="file" id="csvFile" name="csvFile" accept=".csv" required>
    <button type="submit" id="submitBtn">Start Import</button>
  </form>
  <div id="result"></div>
  <script>
    document.getElementById('importForm').addEventListener('submit', async (e) => {
      e.preventDefault();
      const btn = document.getElementById('submitBtn');
      const out = document.getElementById('result');
      btn.disabled = true;
      out.textContent = 'Importing...';
      try {
        const response = await fetch('/import', { method: 'POST', body: new FormData(e.target) });
        const data = await response.json();
        if (data.success) {
          const s = data.result.stats;
          out.innerHTML = '<div class="success"><h3>Import complete</h3>' +
            '<p>Imported: ' + s.success + '</p><p>Failed: ' + s.failed + '</p>' +
            (data.result.errors.length ? '<p><a href="/download-failures">Download failure details</a></p>' : '') +
            '</div>';
        } else {
          out.innerHTML = '<div class="error"></div>';
          out.firstChild.textContent = 'Error: ' + data.error;
        }
      } catch (err) {
        out.textContent = 'Error: ' + err.message;
      } finally {
        btn.disabled = false;
      }
    });
  </script>
</body>
</html>
"""


def default_runner(settings: Settings) -> ImportRunner:
    async def run(attendees: List[AttendeeRecord], event_url: str) -> ImportResult:
        ensure_auth_dir(settings.auth_state_path)
        session_config = SessionConfig(
            target_url=event_url,
            auth_state_path=settings.auth_state_path,
            headless=settings.headless,
            slow_mo_ms=settings.slow_mo_ms,
            credentials=settings.credentials,
        )
        return await run_importer(attendees, session_config, settings.throttle)

    return run


async def index(request: web.Request) -> web.Response:
    return web.Response(text=INDEX_HTML, content_type="text/html")


def _error(message: str) -> web.Response:
    return web.json_response({"success": False, "error": message})


async def import_attendees(request: web.Request) -> web.Response:
    app = request.app
    form = await request.post()

    event_url = str(form.get("eventUrl") or "").strip()
    if not event_url:
        return _error("Event URL is required")

    upload = form.get("csvFile")
    if not isinstance(upload, web.FileField):
        return _error("CSV file is required")

    raw = await asyncio.get_running_loop().run_in_executor(None, upload.file.read)
    try:
        text = raw.decode("utf-8-sig")
        attendees = parse_csv_text(text, origin=upload.filename or "upload")
    except (ImporterError, UnicodeDecodeError) as exc:
        return _error(str(exc))
    if not attendees:
        return _error("No attendees found in CSV file")

    lock = app[LOCK_KEY]
    if lock.locked():
        logger.info("Another import is running; waiting for it to finish")
    async with lock:
        try:
            result = await app[RUNNER_KEY](attendees, event_url)
        except ImporterError as exc:
            logger.error(f"Import failed: {exc}")
            return _error(str(exc))
        except Exception as exc:
            logger.exception(f"Import crashed: {exc}")
            return _error(str(exc) or exc.__class__.__name__)

    write_failures(result, app[SETTINGS_KEY].failures_path)
    return web.json_response({"success": True, "result": result.to_dict()})


async def download_failures(request: web.Request) -> web.StreamResponse:
    path = request.app[SETTINGS_KEY].failures_path
    if not path.exists():
        return web.Response(status=404, text="No failure data found")
    return web.FileResponse(
        path,
        headers={"Content-Disposition": f'attachment; filename="{path.name}"'},
    )


def create_app(settings: Settings, runner: Optional[ImportRunner] = None) -> web.Application:
    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[RUNNER_KEY] = runner or default_runner(settings)
    app[LOCK_KEY] = asyncio.Lock()
    app.router.add_get("/", index)
    app.router.add_post("/import", import_attendees)
    app.router.add_get("/download-failures", download_failures)
    return app


def start_web_ui(settings: Settings, port: int = 3000) -> None:
    logger.info(f"Web UI running at http://localhost:{port}")
    web.run_app(create_app(settings), port=port, print=None)


__all__ = ["create_app", "start_web_ui", "default_runner"]
