"""Login and session management for the event dashboard."""

from __future__ import annotations

import json
import warnings
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Optional

from .browser import BrowserSession, LaunchOptions, PageDriver, SessionLauncher, launch_playwright_session
from .errors import PersistenceWarning, SessionError
from .logger import debug_detail, get_logger, progress, success
from .models import Credentials

logger = get_logger("session")


@dataclass(frozen=True)
class LoginSelectors:
    login_affordance: str = "text=Login"
    user_affordance: str = '[data-testid="user-menu"], .user-menu, [class*="user"]'
    email_input: str = 'input[type="email"], input[name="email"]'
    password_input: str = 'input[type="password"], input[name="password"]'
    submit_button: str = 'button[type="submit"], button:has-text("Login")'


@dataclass(frozen=True)
class SessionConfig:
    target_url: str
    auth_state_path: Path = Path(".auth/bevy-auth.json")
    headless: bool = True
    slow_mo_ms: int = 0
    credentials: Optional[Credentials] = None
    navigation_timeout_ms: int = 60_000
    login_settle_ms: int = 2_000
    selectors: LoginSelectors = field(default_factory=LoginSelectors)


def is_storage_state_effective(path: Path | str) -> bool:
    """Return True if a Playwright storage_state file has cookies/origins."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    if not isinstance(data, dict):
        return False
    return bool(data.get("cookies") or data.get("origins"))


def restorable_storage_state(path: Path | str) -> Optional[str]:
    """Return ``path`` when it holds a usable storage state, else None.

    A missing file is silently ignored; an unreadable or empty one emits a
    :class:`PersistenceWarning`.
    """
    path = Path(path)
    if not path.exists():
        debug_detail(f"No saved session at {path}")
        return None
    if not is_storage_state_effective(path):
        message = f"Ignoring unusable session state at {path}; starting unauthenticated"
        logger.warning(message)
        warnings.warn(message, PersistenceWarning, stacklevel=2)
        return None
    return str(path)


class SessionHandle:
    """Exclusively owned, authenticated browser session for one batch run."""

    def __init__(self, browser: BrowserSession, auth_state_path: Path) -> None:
        self._browser = browser
        self._auth_state_path = Path(auth_state_path)
        self._closed = False

    @property
    def page(self) -> PageDriver:
        return self._browser.page

    @property
    def closed(self) -> bool:
        return self._closed

    async def persist(self) -> bool:
        try:
            self._auth_state_path.parent.mkdir(parents=True, exist_ok=True)
            await self._browser.save_storage_state(str(self._auth_state_path))
        except Exception as exc:
            logger.warning(f"Failed to save storage state: {exc}")
            return False
        if is_storage_state_effective(self._auth_state_path):
            success(f"Saved session to {self._auth_state_path}")
        else:
            logger.warning(f"Saved session to {self._auth_state_path}, but it appears empty.")
        return True

    async def close(self, *, persist: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if persist:
                await self.persist()
        finally:
            await self._browser.close()


class SessionManager:
    """Open the browser, reuse or establish the login, and hand out a :class:`SessionHandle`."""

    def __init__(self, config: SessionConfig, launcher: SessionLauncher = launch_playwright_session) -> None:
        self.config = config
        self._launcher = launcher

    async def acquire(self) -> SessionHandle:
        cfg = self.config
        storage_state = restorable_storage_state(cfg.auth_state_path)
        if storage_state:
            progress("Loading saved session state...")

        options = LaunchOptions(
            headless=cfg.headless,
            slow_mo_ms=cfg.slow_mo_ms,
            storage_state=storage_state,
            timeout_ms=cfg.navigation_timeout_ms,
        )
        try:
            browser = await self._launcher(options)
        except Exception as exc:
            raise SessionError(f"Cannot launch browser: {exc}") from exc
        handle = SessionHandle(browser, cfg.auth_state_path)
        try:
            await self._establish(handle.page)
        except BaseException:
            await handle.close(persist=False)
            raise
        return handle

    @asynccontextmanager
    async def open(self) -> AsyncIterator[SessionHandle]:
        handle = await self.acquire()
        try:
            yield handle
        finally:
            await handle.close()

    async def _establish(self, page: PageDriver) -> None:
        cfg = self.config
        await self._navigate(page)

        if not await self.is_logged_in(page):
            if cfg.credentials is None:
                raise SessionError(
                    "authentication required: not logged in and no credentials provided. "
                    "Log in manually or provide credentials."
                )
            await self.login(page, cfg.credentials)
            logger.info("Login successful, navigating to event page...")
            await self._navigate(page)

        try:
            await page.wait_for_network_idle(cfg.navigation_timeout_ms)
        except Exception as exc:
            raise SessionError(f"Event page did not settle: {exc}") from exc
        success(f"Loaded event page: {cfg.target_url}")

    async def _navigate(self, page: PageDriver) -> None:
        cfg = self.config
        try:
            await page.goto(cfg.target_url, wait_until="load", timeout_ms=cfg.navigation_timeout_ms)
        except Exception as exc:
            raise SessionError(f"Cannot open {cfg.target_url}: {exc}") from exc

    async def is_logged_in(self, page: PageDriver) -> bool:
        """Logged in unless a login affordance shows without any user affordance."""
        selectors = self.config.selectors
        try:
            has_login = await page.query(selectors.login_affordance)
            has_user = await page.query(selectors.user_affordance)
        except Exception as exc:
            debug_detail(f"Login status check failed: {exc}")
            return False
        debug_detail(f"Login affordance: {has_login}, user affordance: {has_user}")
        return not has_login or has_user

    async def login(self, page: PageDriver, credentials: Credentials) -> None:
        cfg = self.config
        selectors = cfg.selectors
        logger.info("Attempting to login...")
        try:
            await page.click(selectors.login_affordance)
            await page.wait_for_network_idle(cfg.navigation_timeout_ms)
            await page.fill(selectors.email_input, credentials.email)
            await page.fill(selectors.password_input, credentials.password)
            await page.click(selectors.submit_button)
            await page.wait_for_network_idle(cfg.navigation_timeout_ms)
            await page.pause(cfg.login_settle_ms)
        except Exception as exc:
            raise SessionError(f"Login failed: {exc}") from exc
        logger.info("Login completed")


__all__ = [
    "LoginSelectors",
    "SessionConfig",
    "SessionHandle",
    "SessionManager",
    "is_storage_state_effective",
    "restorable_storage_state",
]
