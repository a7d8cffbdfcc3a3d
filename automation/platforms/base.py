"""Shared browser session and the interface every platform automation implements."""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

from app.services.retry_service import NonRetryableError, RetryableError
from automation.models import ApplyJob

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

CHROMIUM_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]


class Platform(str, Enum):
    """Job sites the worker knows how to apply on."""
    LINKEDIN = "LINKEDIN"
    INDEED = "INDEED"


class AutomationError(RetryableError):
    """A platform flow failed; another attempt may succeed."""


class UnsupportedPlatformError(NonRetryableError):
    """No automation is registered for the job's platform."""


@dataclass
class ApplyResult:
    """What a successful platform flow returns."""
    platform: str
    applied_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class BrowserSession:
    """Lazily launched Chromium shared by all platform automations.

    One job runs at a time, so a single browser with a fresh context per
    application is enough.
    """

    def __init__(self, headless: bool = True, timeout_ms: int = 30000):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def _ensure_browser(self) -> Browser:
        if self.browser is None:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=CHROMIUM_ARGS
            )
            logger.info(f"Browser started: chromium (headless: {self.headless})")
        return self.browser

    async def new_context(self) -> BrowserContext:
        """Fresh context with a random desktop user agent."""
        browser = await self._ensure_browser()
        context = await browser.new_context(
            user_agent=random.choice(USER_AGENTS),
            viewport={"width": 1920, "height": 1080}
        )
        context.set_default_timeout(self.timeout_ms)
        return context

    async def close(self) -> None:
        """Stop browser and release Playwright."""
        try:
            if self.browser:
                await self.browser.close()
                self.browser = None
            if self.playwright:
                await self.playwright.stop()
                self.playwright = None
            logger.info("Browser stopped and resources cleaned up")
        except Exception as e:
            logger.error(f"Error during browser cleanup: {e}")


class PlatformAutomation(ABC):
    """Applies to one job on one platform."""

    platform: Platform

    def __init__(self, session: BrowserSession):
        self.session = session
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    async def apply(self, job: ApplyJob) -> ApplyResult:
        """Run the platform flow for ``job``.

        Raises:
            AutomationError: the flow did not reach the confirmation step
        """

    async def _fill_contact_fields(self, page, job: ApplyJob) -> List[str]:
        """Fill email and phone inputs identified by their placeholder."""
        filled = []
        inputs = await page.locator('input[type="text"], input[type="email"], input[type="tel"], textarea').all()
        for element in inputs:
            placeholder = (await element.get_attribute("placeholder") or "").lower()
            if "phone" in placeholder and job.phone:
                await element.fill(job.phone)
                filled.append("phone")
            elif "email" in placeholder and job.email:
                await element.fill(job.email)
                filled.append("email")
        return filled
