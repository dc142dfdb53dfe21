"""Tests for ConfirmationPoller: confirmed, rejected, expired, timed out."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from pumptrade.confirmation import ConfirmationPoller, ConfirmationState
from pumptrade.exceptions import (
    ConfirmationTimedOut,
    RpcError,
    TransactionExpired,
    TransactionRejected,
)
from pumptrade.rpc import SolanaRpcClient

SIG = "5VERYlongSignature1111111111111111111111111111"
LAST_VALID = 1_000


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def poller(rpc: AsyncMock, sleep: AsyncMock) -> ConfirmationPoller:
    rpc.get_block_height.return_value = 900
    return ConfirmationPoller(rpc, sleep=sleep)


class TestPollOnce:
    async def test_confirmed(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.return_value = {"slot": 1, "meta": {"err": None}}
        assert await poller.poll_once(SIG, LAST_VALID) is ConfirmationState.CONFIRMED
        rpc.get_block_height.assert_not_awaited()

    async def test_still_polling(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.return_value = None
        assert await poller.poll_once(SIG, LAST_VALID) is ConfirmationState.POLLING

    async def test_height_equal_to_ceiling_is_not_expired(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.return_value = None
        rpc.get_block_height.return_value = LAST_VALID
        assert await poller.poll_once(SIG, LAST_VALID) is ConfirmationState.POLLING


class TestConfirm:
    async def test_confirmed_first_attempt(self, poller: ConfirmationPoller, rpc: AsyncMock, sleep: AsyncMock):
        rpc.get_transaction.return_value = {"meta": {"err": None}}

        assert await poller.confirm(SIG, LAST_VALID, delay=2.0) == SIG
        sleep.assert_awaited_once_with(2.0)

    async def test_rejected_stops_immediately(self, poller: ConfirmationPoller, rpc: AsyncMock):
        err = {"InstructionError": [2, {"Custom": 6003}]}
        rpc.get_transaction.return_value = {"meta": {"err": err}}

        with pytest.raises(TransactionRejected) as exc_info:
            await poller.confirm(SIG, LAST_VALID)

        assert exc_info.value.error == err
        assert exc_info.value.signature == SIG
        assert rpc.get_transaction.await_count == 1

    async def test_expired_stops_immediately(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.return_value = None
        rpc.get_block_height.return_value = LAST_VALID + 1

        with pytest.raises(TransactionExpired) as exc_info:
            await poller.confirm(SIG, LAST_VALID)

        assert exc_info.value.block_height == LAST_VALID + 1
        assert rpc.get_transaction.await_count == 1

    async def test_times_out_after_max_attempts(self, poller: ConfirmationPoller, rpc: AsyncMock, sleep: AsyncMock):
        rpc.get_transaction.return_value = None

        with pytest.raises(ConfirmationTimedOut, match="check signature manually"):
            await poller.confirm(SIG, LAST_VALID, max_attempts=5, delay=0.1)

        assert rpc.get_transaction.await_count == 5
        assert sleep.await_count == 5

    async def test_lands_on_later_attempt(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.side_effect = [None, None, {"meta": {"err": None}}]
        assert await poller.confirm(SIG, LAST_VALID) == SIG
        assert rpc.get_transaction.await_count == 3

    async def test_transient_errors_use_attempts(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.side_effect = [
            RpcError("getTransaction", "HTTP 503", 503),
            httpx.ConnectError("refused"),
            {"meta": {"err": None}},
        ]
        assert await poller.confirm(SIG, LAST_VALID, max_attempts=3) == SIG

    async def test_transient_errors_can_exhaust_attempts(self, poller: ConfirmationPoller, rpc: AsyncMock):
        rpc.get_transaction.side_effect = RpcError("getTransaction", "HTTP 503", 503)
        with pytest.raises(ConfirmationTimedOut) as exc_info:
            await poller.confirm(SIG, LAST_VALID, max_attempts=2)
        assert exc_info.value.attempts == 2

    async def test_gateway_html_body_uses_an_attempt(self, sleep: AsyncMock):
        bodies = iter([
            httpx.Response(200, text="<html>bad gateway</html>"),
            httpx.Response(200, json={"jsonrpc": "2.0", "id": 2, "result": {"meta": {"err": None}}}),
        ])
        client = SolanaRpcClient("https://rpc.example", max_rps=1_000.0)
        client._http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: next(bodies)))
        try:
            poller = ConfirmationPoller(client, sleep=sleep)
            assert await poller.confirm(SIG, LAST_VALID, max_attempts=3) == SIG
            assert sleep.await_count == 2
        finally:
            await client.close()
