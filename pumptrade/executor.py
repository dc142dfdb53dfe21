"""Sub-order execution: build → fresh blockhash → sign → send, one at a time.

A failure in one sub-order is recorded and the batch moves on; the caller
always gets a TradeOutcome back.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from loguru import logger
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.message import MessageV0  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from pumptrade.models import (
    FailedTransaction,
    OrderPlan,
    PendingTransaction,
    TradeOutcome,
)
from pumptrade.rpc import SolanaRpcClient

# (plan index, sub-order amount) -> full instruction list for that transaction
InstructionFactory = Callable[[int, int], Awaitable[list[Instruction]]]


class TransactionExecutor:
    def __init__(
        self,
        rpc: SolanaRpcClient,
        keypair: Keypair,
        *,
        skip_preflight: bool = False,
        max_send_retries: int = 2,
    ) -> None:
        self._rpc = rpc
        self._keypair = keypair
        self._skip_preflight = skip_preflight
        self._max_send_retries = max_send_retries

    async def sign_and_send(self, instructions: list[Instruction]) -> tuple[str, int]:
        """Compile a v0 message with a fresh finalized blockhash, sign, submit.

        Returns (signature, last_valid_block_height).
        """
        blockhash, last_valid_block_height = await self._rpc.get_latest_blockhash("finalized")
        msg = MessageV0.try_compile(
            payer=self._keypair.pubkey(),
            instructions=instructions,
            address_lookup_table_accounts=[],
            recent_blockhash=blockhash,
        )
        tx = VersionedTransaction(msg, [self._keypair])
        signature = await self._rpc.send_raw_transaction(
            bytes(tx),
            skip_preflight=self._skip_preflight,
            max_retries=self._max_send_retries,
        )
        return signature, last_valid_block_height

    async def execute(
        self,
        plan: OrderPlan,
        build: InstructionFactory,
        *,
        label: str = "trade",
    ) -> TradeOutcome:
        outcome = TradeOutcome()
        for index, amount in enumerate(plan.amounts):
            try:
                instructions = await build(index, amount)
                signature, last_valid_block_height = await self.sign_and_send(instructions)
            except Exception as e:
                logger.warning(
                    f"[EXEC] {label} sub-order {index + 1}/{len(plan)} failed: "
                    f"{type(e).__name__}: {e}"
                )
                outcome.failed.append(FailedTransaction(index=index, error=str(e)))
                continue

            outcome.pending.append(
                PendingTransaction(
                    signature=signature,
                    last_valid_block_height=last_valid_block_height,
                    index=index,
                )
            )
            logger.info(
                f"[EXEC] {label} sub-order {index + 1}/{len(plan)} sent: "
                f"amount={amount} tx={signature[:16]}"
            )

        logger.info(
            f"[EXEC] {label} done: {len(outcome.pending)} sent, {len(outcome.failed)} failed"
        )
        return outcome
