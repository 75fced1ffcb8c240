"""
Browser automation for the Cookie Clicker page.

The session core only sees the ``GameHandle`` interface (load a save code, read
it back, read metrics, take a screenshot, close). ``CookieClickerBrowser`` is
the Playwright implementation; it either attaches to a remote Chromium over CDP
(``DRIVER_URL``) or launches a local headless one.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from cookie_afk.errors import CookieCountNotFound, DriverError, PageNotReady, SaveCodeNotFound

logger = logging.getLogger(__name__)

COOKIE_CLICKER_BETA_URL = "https://orteil.dashnet.org/cookieclicker/beta/"

# Page is usable once the DOM is complete, the big cookie exists and the save API is defined
READY_SCRIPT = """
() => document.readyState === "complete"
    && document.getElementById("bigCookie") !== null
    && typeof Game !== "undefined"
    && typeof Game.localStorageSet === "function"
"""

PREPARE_GUI_SCRIPT = """
() => {
    const hide = (el) => { if (el) el.style.display = "none"; };
    hide(document.getElementById("smallSupport"));
    hide(document.getElementById("topBar"));
    hide(document.getElementsByClassName("cc_banner")[0]);
    const game = document.getElementById("game");
    if (game) game.style.top = "0px";
}
"""


@dataclass(frozen=True)
class Metrics:
    """Progress read from the game."""

    cookies: float
    cookies_per_second: float
    cookies_display: str = ""
    per_hour_display: str = ""

    @property
    def cookies_per_hour(self) -> float:
        return self.cookies_per_second * 60 * 60


class GameHandle(ABC):
    """The automation capability owned by an active session."""

    @abstractmethod
    async def load(self, token: str) -> None:
        """Load a save code into the game (empty string starts a fresh game)."""

    @abstractmethod
    async def read_token(self) -> str:
        """Return the game's current save code."""

    @abstractmethod
    async def read_metrics(self) -> Metrics:
        """Return cookie count and production rate."""

    @abstractmethod
    async def screenshot(self) -> bytes:
        """Return a PNG of the current page."""

    @abstractmethod
    async def close(self) -> None:
        """Release the browser."""


HandleFactory = Callable[[], Awaitable[GameHandle]]


async def poll_until(
    check: Callable[[], Awaitable[bool]],
    attempts: int,
    interval: float,
    what: str = "condition",
) -> None:
    """
    Await ``check`` until it returns True, at most ``attempts`` times.

    Raises:
        PageNotReady: if the check never succeeded
    """
    for attempt in range(1, attempts + 1):
        if await check():
            logger.debug(f"{what} satisfied after {attempt} attempt(s)")
            return
        if attempt < attempts:
            await asyncio.sleep(interval)
    raise PageNotReady(f"Timed out waiting for {what} after {attempts} attempts")


class CookieClickerBrowser(GameHandle):
    """Playwright-driven Cookie Clicker tab."""

    def __init__(
        self,
        game_url: str = COOKIE_CLICKER_BETA_URL,
        driver_url: str = "",
        ready_attempts: int = 60,
        ready_interval: float = 0.5,
        timeout_ms: int = 60000,
    ):
        self.game_url = game_url
        self.driver_url = driver_url
        self.ready_attempts = ready_attempts
        self.ready_interval = ready_interval
        self.timeout_ms = timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def connect(self) -> None:
        """Start Playwright and open a 1920x1080 page."""
        try:
            self._playwright = await async_playwright().start()
            if self.driver_url:
                logger.info(f"Connecting to remote browser at {self.driver_url}")
                self._browser = await self._playwright.chromium.connect_over_cdp(self.driver_url)
            else:
                logger.info("Launching local headless Chromium")
                self._browser = await self._playwright.chromium.launch(headless=True)
            self._context = await self._browser.new_context(viewport={"width": 1920, "height": 1080})
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self.timeout_ms)
        except PlaywrightError as e:
            try:
                await self.close()
            except DriverError as close_error:
                logger.warning(f"Cleanup after failed start also failed: {close_error}")
            raise DriverError(f"Cannot start browser: {e}") from e
        logger.info("Browser connected")

    @property
    def page(self) -> Page:
        if self._page is None:
            raise DriverError("Browser not started")
        return self._page

    async def _evaluate(self, script: str, arg=None):
        try:
            return await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise DriverError(str(e)) from e

    async def _is_ready(self) -> bool:
        return bool(await self._evaluate(READY_SCRIPT))

    async def _load_game(self) -> None:
        """Navigate to the game and wait until it is playable."""
        logger.debug(f"Loading {self.game_url}")
        try:
            await self.page.goto(self.game_url)
        except PlaywrightError as e:
            raise DriverError(f"Cannot open {self.game_url}: {e}") from e

        await poll_until(self._is_ready, self.ready_attempts, self.ready_interval, what="game page")
        await self._evaluate(PREPARE_GUI_SCRIPT)
        logger.debug("Game loaded")

    async def load(self, token: str) -> None:
        await self._load_game()
        if not token:
            logger.info("No save code given, starting a fresh game")
            return

        await self._evaluate("(code) => Game.localStorageSet(Game.SaveTo, code)", token)
        # Reload so the game boots from the stored save
        await self._load_game()
        logger.info("Save code loaded")

    async def read_token(self) -> str:
        save_code = await self._evaluate("() => Game.localStorageGet(Game.SaveTo)")
        if not isinstance(save_code, str) or not save_code:
            raise SaveCodeNotFound("The game returned no save code")
        return save_code

    async def _beautify(self, value: float) -> str:
        text = await self._evaluate("(n) => Beautify(n)", value)
        if not isinstance(text, str):
            raise CookieCountNotFound("Beautify returned no text")
        return text

    async def read_metrics(self) -> Metrics:
        raw = await self._evaluate("() => ({cookies: Game.cookies, cps: Game.cookiesPs * (1 - Game.cpsSucked)})")
        try:
            cookies = float(raw["cookies"])
            cookies_per_second = float(raw["cps"])
        except (KeyError, TypeError, ValueError) as e:
            raise CookieCountNotFound(f"Unexpected cookie values: {raw!r}") from e

        return Metrics(
            cookies=cookies,
            cookies_per_second=cookies_per_second,
            cookies_display=await self._beautify(cookies),
            per_hour_display=await self._beautify(cookies_per_second * 60 * 60),
        )

    async def screenshot(self) -> bytes:
        try:
            return await self.page.screenshot(type="png")
        except PlaywrightError as e:
            raise DriverError(f"Screenshot failed: {e}") from e

    async def close(self) -> None:
        logger.info("Quitting browser...")
        try:
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except PlaywrightError as e:
            raise DriverError(f"Error while closing browser: {e}") from e
        finally:
            self._page = None
            self._context = None
            self._browser = None
            self._playwright = None


def browser_factory(config) -> HandleFactory:
    """Build a factory that opens a connected CookieClickerBrowser per session."""

    async def factory() -> GameHandle:
        browser = CookieClickerBrowser(
            game_url=config.game_url,
            driver_url=config.driver_url,
            ready_attempts=config.page_ready_attempts,
            ready_interval=config.page_ready_interval,
        )
        await browser.connect()
        return browser

    return factory
