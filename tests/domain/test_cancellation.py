"""Tests for CancellationToken."""

import asyncio

import pytest
from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.exceptions import OperationCancelledError


class TestCancellationToken:
    def test_not_cancelled_by_default(self):
        token = CancellationToken()
        assert token.is_cancelled is False
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled
        with pytest.raises(OperationCancelledError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        token = CancellationToken()
        await token.sleep(0.01)

    @pytest.mark.asyncio
    async def test_sleep_interrupted(self):
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, token.cancel)

        started = loop.time()
        with pytest.raises(OperationCancelledError):
            await token.sleep(10)
        assert loop.time() - started < 5

    @pytest.mark.asyncio
    async def test_sleep_when_already_cancelled(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            await token.sleep(0)
