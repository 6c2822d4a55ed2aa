"""Scoped headless Chromium session using Playwright."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

import config

logger = logging.getLogger(__name__)


class HeadlessBrowser:
    """
    One isolated Chromium process per `async with` block.
    The process and the Playwright driver are released on exit, whatever happened inside.
    """

    def __init__(self, timeout_ms: int = config.PROTOCOL_TIMEOUT_MS):
        self.timeout_ms = timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "HeadlessBrowser":
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=config.CHROMIUM_ARGS,
                timeout=self.timeout_ms,
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.debug("Chromium launched")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if self._browser:
                await self._browser.close()
                logger.debug("Chromium closed")
        finally:
            self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None

    async def new_page(self, viewport: dict | None = None) -> Page:
        if not self._browser:
            raise RuntimeError("browser is not running")
        page = await self._browser.new_page()
        page.set_default_timeout(self.timeout_ms)
        await page.set_viewport_size(viewport or config.VIEWPORT)
        return page
