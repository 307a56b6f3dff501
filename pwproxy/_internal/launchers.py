"""Root-object launchers.

The default launcher drives Playwright's async API. Playwright is imported
only when the first session is opened, so the server can start (and answer
``/shutdown``) on machines where the engine is not installed yet.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Target names understood on the wire -> attribute of the Playwright object.
PLAYWRIGHT_BROWSERS: dict[str, str] = {
    "chrome": "chromium",
    "firefox": "firefox",
    "webkit": "webkit",
}


class PlaywrightLauncher:
    """Launches Playwright browsers as session roots."""

    def __init__(self, visible: bool = False) -> None:
        self.visible = visible
        self._context_manager: Any = None
        self._playwright: Any = None
        self._launched: list[Any] = []

    def supports(self, target: str) -> bool:
        return target in PLAYWRIGHT_BROWSERS

    async def _ensure_started(self) -> Any:
        if self._playwright is None:
            from playwright.async_api import async_playwright

            self._context_manager = async_playwright()
            self._playwright = await self._context_manager.start()
            logger.debug("Playwright driver started")
        return self._playwright

    async def launch(self, target: str, args: list[Any], kwargs: dict[str, Any]) -> Any:
        playwright = await self._ensure_started()
        browser_type = getattr(playwright, PLAYWRIGHT_BROWSERS[target])
        options = dict(kwargs)
        # Launch options may also arrive as a single positional object.
        if args and isinstance(args[-1], dict):
            options = {**args[-1], **options}
            args = list(args[:-1])
        options.setdefault("headless", not self.visible)
        logger.info("Launching %s (headless=%s)", target, options["headless"])
        browser = await browser_type.launch(*args, **options)
        self._launched.append(browser)
        return browser

    async def close(self) -> None:
        errors: list[str] = []
        for browser in self._launched:
            try:
                await browser.close()
            except Exception as exc:
                errors.append(f"browser: {exc}")
        self._launched.clear()
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                errors.append(f"playwright: {exc}")
            self._playwright = None
            self._context_manager = None
        if errors:
            logger.warning("Errors closing engine: %s", "; ".join(errors))
