"""Platform dispatch by the job's ``platform`` field."""

import logging
from typing import Dict, Iterable

from automation.platforms.base import BrowserSession, Platform, PlatformAutomation, UnsupportedPlatformError
from automation.platforms.indeed import IndeedAutomation
from automation.platforms.linkedin import LinkedInAutomation

logger = logging.getLogger(__name__)


class PlatformRegistry:
    """Maps platforms to the automation that handles them."""

    def __init__(self, automations: Iterable[PlatformAutomation] = ()):
        self._automations: Dict[Platform, PlatformAutomation] = {}
        for automation in automations:
            self.register(automation)

    def register(self, automation: PlatformAutomation) -> None:
        self._automations[automation.platform] = automation

    def get(self, platform: str) -> PlatformAutomation:
        """Automation for ``platform``.

        Raises:
            UnsupportedPlatformError: unknown platform or nothing registered for it
        """
        key = (platform or "").strip().upper()
        automation = self._automations.get(Platform.__members__.get(key))
        if automation is None:
            raise UnsupportedPlatformError(f"Unsupported platform: {platform}")
        return automation

    @property
    def platforms(self):
        return [platform.value for platform in self._automations]


def default_registry(session: BrowserSession) -> PlatformRegistry:
    """Registry with every built-in platform sharing one browser session."""
    return PlatformRegistry([LinkedInAutomation(session), IndeedAutomation(session)])
