"""Polling worker that keeps the OAuth token fresh before each mail check."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Awaitable, Callable, Optional

from pens.core.config import get_settings
from pens.core.logging import configure_logging
from pens.dependencies import build_token_manager
from pens.services.token_lifecycle import TokenLifecycleManager

logger = logging.getLogger(__name__)

TokenConsumer = Callable[[str], Awaitable[None]]


class TokenRefreshWorker:
    """Run one check-and-maybe-refresh per interval, then hand the token on."""

    def __init__(
        self,
        manager: TokenLifecycleManager,
        on_token: Optional[TokenConsumer] = None,
        poll_interval_seconds: float = 60.0,
    ) -> None:
        self._manager = manager
        self._on_token = on_token
        self._poll_interval = poll_interval_seconds
        self._stopped = asyncio.Event()
        self.cycles = 0
        self.failures = 0

    def stop(self) -> None:
        self._stopped.set()

    async def run_once(self) -> bool:
        self.cycles += 1
        if not await self._manager.ensure_valid_token():
            self.failures += 1
            failure = self._manager.last_failure
            logger.warning(
                "OAuth token unavailable; skipping this cycle (%s)",
                failure.error if failure else "unknown",
            )
            return False

        if self._on_token is not None:
            try:
                await self._on_token(self._manager.get_access_token())
            except Exception:
                logger.exception("Token consumer failed during polling cycle")
                return False
        return True

    async def run_forever(self) -> None:
        while not self._stopped.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                continue
        logger.info("Token refresh worker stopped")


async def main(run_once: bool = False) -> int:
    settings = get_settings()
    configure_logging(settings.effective_log_level)

    manager = build_token_manager(settings.oauth)
    worker = TokenRefreshWorker(
        manager=manager,
        poll_interval_seconds=settings.check_interval,
    )

    if run_once:
        logger.info("Checking OAuth token once and exiting")
        return 0 if await worker.run_once() else 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            pass

    logger.info("Starting continuous token monitoring every %s seconds", settings.check_interval)
    await worker.run_forever()
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution path
    parser = argparse.ArgumentParser(description="Keep the mail OAuth token valid.")
    parser.add_argument("-o", "--once", action="store_true", help="Check once and exit.")
    arguments = parser.parse_args()
    raise SystemExit(asyncio.run(main(run_once=arguments.once)))
