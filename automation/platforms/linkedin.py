"""LinkedIn Easy Apply automation."""

import random
from datetime import datetime, timezone

from playwright.async_api import Error as PlaywrightError

from automation.models import ApplyJob
from automation.platforms.base import ApplyResult, AutomationError, Platform, PlatformAutomation

EASY_APPLY_BUTTON = 'button:has-text("Easy Apply")'
SUBMIT_BUTTON = 'button:has-text("Submit")'
CONFIRMATION_TEXT = "text=Application submitted"

# Form steps wait at most this long, regardless of the browser timeout
STEP_TIMEOUT_MS = 10000


class LinkedInAutomation(PlatformAutomation):
    """LinkedIn-specific automation: Easy Apply modal, contact fields, submit."""

    platform = Platform.LINKEDIN

    async def apply(self, job: ApplyJob) -> ApplyResult:
        context = await self.session.new_context()
        page = await context.new_page()
        try:
            self.logger.info(f"Starting LinkedIn application {job.application_id}: {job.job_url}")
            await page.goto(job.job_url, wait_until="networkidle")

            easy_apply = page.locator(EASY_APPLY_BUTTON).first
            await easy_apply.wait_for(timeout=STEP_TIMEOUT_MS)
            await easy_apply.click()

            await page.wait_for_selector("form", timeout=STEP_TIMEOUT_MS)
            filled = await self._fill_contact_fields(page, job)
            self.logger.debug(f"Filled fields: {filled}")
            await page.wait_for_timeout(random.randint(1000, 3000))

            await page.locator(SUBMIT_BUTTON).first.click()
            await page.wait_for_selector(CONFIRMATION_TEXT, timeout=STEP_TIMEOUT_MS)

            self.logger.info(f"LinkedIn application successful for {job.application_id}")
            return ApplyResult(platform=self.platform.value, applied_at=datetime.now(timezone.utc))

        except PlaywrightError as e:
            raise AutomationError(f"LinkedIn automation failed: {e}") from e
        finally:
            await context.close()
