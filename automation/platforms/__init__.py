"""Platform automations for the worker."""

from .base import (
    ApplyResult,
    AutomationError,
    BrowserSession,
    Platform,
    PlatformAutomation,
    UnsupportedPlatformError,
)
from .registry import PlatformRegistry, default_registry

__all__ = [
    "ApplyResult",
    "AutomationError",
    "BrowserSession",
    "Platform",
    "PlatformAutomation",
    "PlatformRegistry",
    "UnsupportedPlatformError",
    "default_registry",
]
