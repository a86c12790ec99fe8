"""Browser capability consumed by the session manager and the form submitter.

The core logic only talks to :class:`PageDriver` and :class:`BrowserSession`;
:func:`launch_playwright_session` provides the Playwright-backed versions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PwTimeout,
    async_playwright,
)

from .logger import debug_detail, step


class WaitTimeout(Exception):
    """A bounded wait for an element state ran out of time."""


class PageDriver(Protocol):
    """The page primitives the importer needs."""

    @property
    def url(self) -> str: ...

    async def goto(self, url: str, *, wait_until: str = "load", timeout_ms: Optional[int] = None) -> None: ...

    async def query(self, selector: str) -> bool:
        """Return True when at least one element matches ``selector``."""

    async def click(self, selector: str) -> None: ...

    async def fill(self, selector: str, value: str) -> None: ...

    async def wait_for_visible(self, selector: str, timeout_ms: int) -> None: ...

    async def wait_for_hidden(self, selector: str, timeout_ms: int) -> None: ...

    async def wait_for_network_idle(self, timeout_ms: Optional[int] = None) -> None: ...

    async def pause(self, ms: int) -> None: ...


class BrowserSession(Protocol):
    """An open browser context with one page."""

    page: PageDriver

    async def save_storage_state(self, path: str) -> None: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class LaunchOptions:
    headless: bool = True
    slow_mo_ms: int = 0
    storage_state: Optional[str] = None
    timeout_ms: int = 60_000


SessionLauncher = Callable[[LaunchOptions], Awaitable[BrowserSession]]


class PlaywrightPageDriver:
    """:class:`PageDriver` on top of a Playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str, *, wait_until: str = "load", timeout_ms: Optional[int] = None) -> None:
        await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)

    async def query(self, selector: str) -> bool:
        return await self._page.query_selector(selector) is not None

    async def click(self, selector: str) -> None:
        await self._page.click(selector)

    async def fill(self, selector: str, value: str) -> None:
        await self._page.fill(selector, value)

    async def wait_for_visible(self, selector: str, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
        except PwTimeout as exc:
            raise WaitTimeout(f"{selector} not visible after {timeout_ms}ms") from exc

    async def wait_for_hidden(self, selector: str, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector(selector, state="hidden", timeout=timeout_ms)
        except PwTimeout as exc:
            raise WaitTimeout(f"{selector} still visible after {timeout_ms}ms") from exc

    async def wait_for_network_idle(self, timeout_ms: Optional[int] = None) -> None:
        await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)

    async def pause(self, ms: int) -> None:
        await self._page.wait_for_timeout(ms)


class PlaywrightBrowserSession:
    """Owns the Playwright driver, browser and context behind one page."""

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext, page: Page) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self.page = PlaywrightPageDriver(page)

    async def save_storage_state(self, path: str) -> None:
        await self._context.storage_state(path=path)

    async def close(self) -> None:
        try:
            await self._context.close()
            await self._browser.close()
        finally:
            await self._playwright.stop()


async def launch_playwright_session(options: LaunchOptions) -> PlaywrightBrowserSession:
    """Launch Chromium and open a page, restoring ``options.storage_state`` when given."""
    playwright = await async_playwright().start()
    try:
        step("Launching browser...")
        debug_detail(f"Browser: chromium, headless: {options.headless}, slow_mo: {options.slow_mo_ms}ms")
        browser = await playwright.chromium.launch(headless=options.headless, slow_mo=options.slow_mo_ms)
        context_kwargs = {}
        if options.storage_state:
            context_kwargs["storage_state"] = options.storage_state
        context = await browser.new_context(**context_kwargs)
        context.set_default_timeout(options.timeout_ms)
        page = await context.new_page()
    except Exception:
        await playwright.stop()
        raise
    return PlaywrightBrowserSession(playwright, browser, context, page)


__all__ = [
    "WaitTimeout",
    "PageDriver",
    "BrowserSession",
    "LaunchOptions",
    "SessionLauncher",
    "PlaywrightPageDriver",
    "PlaywrightBrowserSession",
    "launch_playwright_session",
]
