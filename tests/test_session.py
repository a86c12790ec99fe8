import asyncio
import json
from pathlib import Path

import pytest

from attendee_importer.errors import PersistenceWarning, SessionError
from attendee_importer.models import Credentials
from attendee_importer.session import (
    LoginSelectors,
    SessionConfig,
    SessionManager,
    is_storage_state_effective,
    restorable_storage_state,
)

from fakes import FakeBrowserSession, FakeLauncher, FakePage, write_storage_state

EVENT_URL = "https://events.example.com/dashboard/events/4199/registrations"
LOGIN = LoginSelectors()


def make_manager(tmp_path: Path, page: FakePage, credentials=None, **overrides):
    config = SessionConfig(
        target_url=EVENT_URL,
        auth_state_path=tmp_path / ".auth" / "state.json",
        credentials=credentials,
        login_settle_ms=0,
        **overrides,
    )
    launcher = FakeLauncher(FakeBrowserSession(page))
    return SessionManager(config, launcher), launcher


def test_storage_state_effective_requires_cookies_or_origins(tmp_path: Path) -> None:
    empty = tmp_path / "empty.json"
    empty.write_text(json.dumps({"cookies": [], "origins": []}), encoding="utf-8")
    full = write_storage_state(tmp_path / "full.json")

    assert not is_storage_state_effective(empty)
    assert is_storage_state_effective(full)
    assert not is_storage_state_effective(tmp_path / "missing.json")


def test_missing_state_file_is_silently_ignored(tmp_path: Path, recwarn) -> None:
    assert restorable_storage_state(tmp_path / "missing.json") is None
    assert not [w for w in recwarn if issubclass(w.category, PersistenceWarning)]


def test_corrupt_state_file_warns_and_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.warns(PersistenceWarning):
        assert restorable_storage_state(path) is None


def test_valid_saved_session_skips_login(tmp_path: Path) -> None:
    page = FakePage(present={LOGIN.user_affordance})
    manager, launcher = make_manager(tmp_path, page, credentials=Credentials("me@example.com", "pw"))
    write_storage_state(manager.config.auth_state_path)

    handle = asyncio.run(manager.acquire())

    assert launcher.options[0].storage_state == str(manager.config.auth_state_path)
    assert page.calls_named("click") == []
    assert page.calls_named("fill") == []
    assert page.calls_named("goto") == [("goto", EVENT_URL)]
    assert page.calls[-1] == ("network_idle",)
    assert handle.page is page


def test_no_login_affordance_counts_as_logged_in(tmp_path: Path) -> None:
    page = FakePage()
    manager, _ = make_manager(tmp_path, page)

    asyncio.run(manager.acquire())

    assert page.calls_named("click") == []


def test_login_with_credentials_then_returns_to_event(tmp_path: Path) -> None:
    page = FakePage(present={LOGIN.login_affordance})
    manager, launcher = make_manager(tmp_path, page, credentials=Credentials("me@example.com", "s3cret"))

    asyncio.run(manager.acquire())

    assert launcher.options[0].storage_state is None
    assert page.calls_named("click") == [("click", LOGIN.login_affordance), ("click", LOGIN.submit_button)]
    assert ("fill", LOGIN.email_input, "me@example.com") in page.calls
    assert ("fill", LOGIN.password_input, "s3cret") in page.calls
    assert page.calls_named("goto") == [("goto", EVENT_URL), ("goto", EVENT_URL)]


def test_not_logged_in_without_credentials_is_fatal_and_closes_browser(tmp_path: Path) -> None:
    page = FakePage(present={LOGIN.login_affordance})
    manager, launcher = make_manager(tmp_path, page)

    with pytest.raises(SessionError, match="authentication required"):
        asyncio.run(manager.acquire())

    assert launcher.session.closed
    assert launcher.session.saved_to == []


def test_navigation_failure_is_session_error(tmp_path: Path) -> None:
    page = FakePage(errors={("goto", EVENT_URL): RuntimeError("net::ERR_NAME_NOT_RESOLVED")})
    manager, launcher = make_manager(tmp_path, page)

    with pytest.raises(SessionError, match="ERR_NAME_NOT_RESOLVED"):
        asyncio.run(manager.acquire())

    assert launcher.session.closed


def test_login_interaction_failure_is_session_error(tmp_path: Path) -> None:
    page = FakePage(
        present={LOGIN.login_affordance},
        errors={("fill", LOGIN.password_input): RuntimeError("no password field")},
    )
    manager, _ = make_manager(tmp_path, page, credentials=Credentials("me@example.com", "pw"))

    with pytest.raises(SessionError, match="Login failed: no password field"):
        asyncio.run(manager.acquire())


def test_login_status_query_error_counts_as_logged_out(tmp_path: Path) -> None:
    page = FakePage(errors={("query", LOGIN.login_affordance): RuntimeError("boom")})
    manager, _ = make_manager(tmp_path, page)

    assert asyncio.run(manager.is_logged_in(page)) is False


def test_close_persists_state_then_closes(tmp_path: Path) -> None:
    page = FakePage()
    manager, launcher = make_manager(tmp_path, page)
    state_path = manager.config.auth_state_path

    async def scenario():
        async with manager.open() as handle:
            assert not handle.closed
        return handle

    handle = asyncio.run(scenario())

    assert handle.closed
    assert launcher.session.closed
    assert launcher.session.saved_to == [str(state_path)]
    assert is_storage_state_effective(state_path)


def test_close_twice_is_noop_and_save_errors_do_not_block_close(tmp_path: Path) -> None:
    page = FakePage()
    manager, launcher = make_manager(tmp_path, page)
    launcher.session.save_error = OSError("disk full")

    async def scenario():
        handle = await manager.acquire()
        await handle.close()
        await handle.close()

    asyncio.run(scenario())

    assert launcher.session.closed
    assert launcher.session.saved_to == []


def test_browser_launch_failure_is_session_error(tmp_path: Path) -> None:
    async def broken_launcher(options):
        raise RuntimeError("Executable doesn't exist at /ms-playwright/chromium")

    config = SessionConfig(target_url=EVENT_URL, auth_state_path=tmp_path / "state.json")

    with pytest.raises(SessionError, match="Cannot launch browser: Executable doesn't exist"):
        asyncio.run(SessionManager(config, broken_launcher).acquire())
