from __future__ import annotations

import asyncio

import pytest

from pens.services.token_lifecycle import TokenFailure
from pens.worker import TokenRefreshWorker


class FakeManager:
    def __init__(self, outcomes: list[bool]) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0
        self.last_failure: TokenFailure | None = None

    async def ensure_valid_token(self) -> bool:
        self.calls += 1
        ok = self.outcomes.pop(0) if self.outcomes else True
        self.last_failure = None if ok else TokenFailure(error="EndpointError", message="rejected")
        return ok

    def get_access_token(self) -> str:
        return f"token-{self.calls}"


@pytest.mark.anyio
async def test_run_once_hands_token_to_consumer() -> None:
    received: list[str] = []

    async def consumer(token: str) -> None:
        received.append(token)

    worker = TokenRefreshWorker(FakeManager([True]), on_token=consumer)

    assert await worker.run_once() is True
    assert received == ["token-1"]


@pytest.mark.anyio
async def test_run_once_skips_consumer_when_token_unavailable() -> None:
    received: list[str] = []

    async def consumer(token: str) -> None:
        received.append(token)

    worker = TokenRefreshWorker(FakeManager([False]), on_token=consumer)

    assert await worker.run_once() is False
    assert received == []
    assert worker.failures == 1


@pytest.mark.anyio
async def test_run_forever_polls_until_stopped() -> None:
    manager = FakeManager([False, True, True])
    worker: TokenRefreshWorker

    async def consumer(token: str) -> None:
        if manager.calls >= 3:
            worker.stop()

    worker = TokenRefreshWorker(manager, on_token=consumer, poll_interval_seconds=0.01)

    await asyncio.wait_for(worker.run_forever(), timeout=5)

    assert manager.calls == 3
    assert worker.cycles == 3
    assert worker.failures == 1


@pytest.mark.anyio
async def test_consumer_failure_is_logged_and_polling_continues(caplog) -> None:
    manager = FakeManager([True, True])
    received: list[str] = []
    worker: TokenRefreshWorker

    async def consumer(token: str) -> None:
        if manager.calls == 1:
            raise RuntimeError("mail server unreachable")
        received.append(token)
        worker.stop()

    worker = TokenRefreshWorker(manager, on_token=consumer, poll_interval_seconds=0.01)

    with caplog.at_level("ERROR", logger="pens.worker"):
        assert await worker.run_once() is False
        await asyncio.wait_for(worker.run_forever(), timeout=5)

    assert "Token consumer failed during polling cycle" in caplog.text
    assert received == ["token-2"]
    assert worker.cycles == 2
    assert worker.failures == 0
