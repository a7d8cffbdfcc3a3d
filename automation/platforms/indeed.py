"""Indeed apply-flow automation."""

from datetime import datetime, timezone

from playwright.async_api import Error as PlaywrightError

from automation.models import ApplyJob
from automation.platforms.base import ApplyResult, AutomationError, Platform, PlatformAutomation

APPLY_BUTTON = 'button:has-text("Apply"), a:has-text("Apply")'
APPLICATION_FORM = 'form, [data-testid="application-form"]'
SUBMIT_BUTTON = 'button:has-text("Submit"), button[type="submit"]'
CONFIRMATION_TEXT = 'text=/Application submitted|Thank you/'


class IndeedAutomation(PlatformAutomation):
    """Indeed-specific automation."""

    platform = Platform.INDEED

    async def apply(self, job: ApplyJob) -> ApplyResult:
        context = await self.session.new_context()
        page = await context.new_page()
        try:
            self.logger.info(f"Starting Indeed application {job.application_id}: {job.job_url}")
            await page.goto(job.job_url, wait_until="networkidle")

            apply_button = page.locator(APPLY_BUTTON).first
            await apply_button.wait_for()
            await apply_button.click()

            await page.wait_for_selector(APPLICATION_FORM)
            await self._fill_contact_fields(page, job)

            await page.locator(SUBMIT_BUTTON).first.click()
            await page.wait_for_selector(CONFIRMATION_TEXT)

            self.logger.info(f"Indeed application successful for {job.application_id}")
            return ApplyResult(platform=self.platform.value, applied_at=datetime.now(timezone.utc))

        except PlaywrightError as e:
            raise AutomationError(f"Indeed automation failed: {e}") from e
        finally:
            await context.close()
