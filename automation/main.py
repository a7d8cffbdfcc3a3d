"""Automation worker entry point (``apply-worker``)."""

import asyncio
import logging
import signal
import sys
from typing import Optional

from app.services.logging_service import setup_logging
from automation.client import OriginClient
from automation.config import WorkerSettings
from automation.platforms import BrowserSession, default_registry
from automation.worker import Worker

logger = logging.getLogger(__name__)


async def run(settings: Optional[WorkerSettings] = None) -> int:
    """Run the worker until it stops; returns the process exit code."""
    settings = settings or WorkerSettings()
    setup_logging(settings.log_level, settings.log_format)

    browser = BrowserSession(headless=settings.headless, timeout_ms=settings.browser_timeout)
    client = OriginClient(settings.api_url, timeout=settings.request_timeout)
    worker = Worker(client, default_registry(browser), settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop, f"received {sig.name}")
        except NotImplementedError:
            logger.debug(f"Signal handlers unavailable for {sig.name} on this platform")

    try:
        await worker.start()
        await worker.wait_stopped()
    finally:
        await client.aclose()
        await browser.close()

    # A circuit-breaker stop exits non-zero so a supervisor restarts the worker
    return 1 if worker.fatal else 0


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
