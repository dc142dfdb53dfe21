"""Bounded confirmation polling for submitted transactions.

Each attempt sleeps, then looks the transaction up:

  found, meta.err set      -> FAILED     (TransactionRejected, no more attempts)
  found, no error          -> CONFIRMED  (signature returned)
  not found, height > ttl  -> EXPIRED    (TransactionExpired, no more attempts)
  not found otherwise      -> POLLING    (next attempt)

Attempts exhausted while POLLING -> TIMED_OUT (ConfirmationTimedOut).
Lookup errors unrelated to the transaction's own outcome use up an attempt
and are otherwise ignored.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

import httpx
from loguru import logger

from pumptrade.exceptions import (
    ConfirmationTimedOut,
    RpcError,
    TransactionExpired,
    TransactionRejected,
)
from pumptrade.rpc import SolanaRpcClient

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_DELAY_SEC = 2.0


class ConfirmationState(Enum):
    POLLING = "polling"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"
    TIMED_OUT = "timed_out"


class ConfirmationPoller:
    def __init__(
        self,
        rpc: SolanaRpcClient,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._rpc = rpc
        self._sleep = sleep

    async def poll_once(self, signature: str, last_valid_block_height: int) -> ConfirmationState:
        """One status lookup. Raises on FAILED / EXPIRED."""
        tx = await self._rpc.get_transaction(signature, commitment="confirmed")
        if tx:
            err = (tx.get("meta") or {}).get("err")
            if err:
                logger.warning(f"[CONFIRM] TX {signature[:16]} error on-chain: {err}")
                raise TransactionRejected(signature, err)
            return ConfirmationState.CONFIRMED

        block_height = await self._rpc.get_block_height("finalized")
        if block_height > last_valid_block_height:
            logger.warning(
                f"[CONFIRM] TX {signature[:16]} expired at height {block_height} "
                f"(last valid {last_valid_block_height})"
            )
            raise TransactionExpired(signature, last_valid_block_height, block_height)
        return ConfirmationState.POLLING

    async def confirm(
        self,
        signature: str,
        last_valid_block_height: int,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay: float = DEFAULT_DELAY_SEC,
    ) -> str:
        """Poll until confirmed; returns the signature."""
        logger.info(f"[CONFIRM] Waiting for {signature} (https://solscan.io/tx/{signature})")
        state = ConfirmationState.POLLING
        for attempt in range(1, max_attempts + 1):
            await self._sleep(delay)
            try:
                state = await self.poll_once(signature, last_valid_block_height)
            except (RpcError, httpx.TransportError) as e:
                logger.debug(
                    f"[CONFIRM] Status lookup failed ({attempt}/{max_attempts}), retrying: {e}"
                )
                continue

            if state is ConfirmationState.CONFIRMED:
                logger.info(f"[CONFIRM] TX {signature[:16]} confirmed after {attempt} attempt(s)")
                return signature
            logger.debug(f"[CONFIRM] TX {signature[:16]} not landed yet ({attempt}/{max_attempts})")

        state = ConfirmationState.TIMED_OUT
        logger.warning(f"[CONFIRM] TX {signature[:16]} {state.value} after {max_attempts} attempts")
        raise ConfirmationTimedOut(signature, max_attempts)
