"""Trade engine facade for pump.fun tokens, bonding curve and PumpSwap AMM.

Flow per trade call:
  1. Read fresh state (curve or pool + reserves), token program, global config
  2. Fail fast on phase/state problems (nothing is sent)
  3. Plan sub-orders under the per-transaction ceiling
  4. For each sub-order: quote → slippage bound → priority fee → instructions
     → sign → send, recording success/failure independently
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from loguru import logger
from solders.instruction import Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade import pricing
from pumptrade.confirmation import DEFAULT_DELAY_SEC, DEFAULT_MAX_ATTEMPTS, ConfirmationPoller
from pumptrade.constants import (
    LAMPORTS_PER_SOL,
    PRICE_PROBE_TOKEN_AMOUNT,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    WSOL_MINT,
)
from pumptrade.events import TradeHandler, TradeStreamClient, TradeSubscription
from pumptrade.exceptions import AccountNotFound
from pumptrade.executor import TransactionExecutor
from pumptrade.instructions import (
    AmmAccounts,
    CurveAccounts,
    build_amm_buy,
    build_amm_sell,
    build_curve_buy,
    build_curve_sell,
    close_account,
    compute_budget_instructions,
    create_associated_token_account,
    wrap_sol_instructions,
)
from pumptrade.models import (
    PriceQuote,
    TokenBalance,
    TokenMetadata,
    TokenProgram,
    TradeMode,
    TradeOptions,
    TradeOutcome,
)
from pumptrade.planner import plan_buy, plan_sell
from pumptrade.rpc import SolanaRpcClient
from pumptrade.state import StateReader
from pumptrade.wallet import SolanaWallet

if TYPE_CHECKING:
    from config.settings import Settings


def _require_positive(amount: int, what: str) -> None:
    if amount <= 0:
        raise ValueError(f"{what} must be positive, got {amount}")


class PumpTrader:
    """Buys and sells pump.fun tokens on whichever phase the token is in."""

    def __init__(
        self,
        *,
        rpc: SolanaRpcClient,
        wallet: SolanaWallet,
        options: TradeOptions,
        ws_url: str = "",
        curve_compute_unit_limit: int = 200_000,
        amm_compute_unit_limit: int = 300_000,
        confirm_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        confirm_delay_sec: float = DEFAULT_DELAY_SEC,
        rng: random.Random | None = None,
    ) -> None:
        self._rpc = rpc
        self._wallet = wallet
        self._options = options
        self._ws_url = ws_url
        self._curve_cu_limit = curve_compute_unit_limit
        self._amm_cu_limit = amm_compute_unit_limit
        self._confirm_max_attempts = confirm_max_attempts
        self._confirm_delay = confirm_delay_sec
        self._rng = rng or random.Random()

        self._state = StateReader(rpc)
        self._executor = TransactionExecutor(rpc, wallet.keypair)
        self._poller = ConfirmationPoller(rpc)
        self._stream: TradeStreamClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> PumpTrader:
        rpc = SolanaRpcClient(
            settings.solana_rpc_url,
            timeout=settings.rpc_timeout_sec,
            max_rps=settings.rpc_max_rps,
        )
        return cls(
            rpc=rpc,
            wallet=SolanaWallet.from_base58(settings.wallet_private_key),
            options=TradeOptions.from_settings(settings),
            ws_url=settings.ws_url,
            curve_compute_unit_limit=settings.curve_compute_unit_limit,
            amm_compute_unit_limit=settings.amm_compute_unit_limit,
            confirm_max_attempts=settings.confirm_max_attempts,
            confirm_delay_sec=settings.confirm_delay_sec,
        )

    def __repr__(self) -> str:
        return f"PumpTrader(wallet={self._wallet.pubkey_str})"

    @property
    def wallet(self) -> SolanaWallet:
        return self._wallet

    @property
    def state(self) -> StateReader:
        return self._state

    # ─── Token program cache ─────────────────────────────────────────

    async def detect_token_program(self, mint: str) -> TokenProgram:
        return await self._state.detect_token_program(Pubkey.from_string(mint))

    def cached_token_program(self, mint: str) -> TokenProgram | None:
        return self._state.cached_token_program(mint)

    def clear_token_program_cache(self, mint: str | None = None) -> None:
        self._state.evict_token_program(mint)

    # ─── Phase / price ───────────────────────────────────────────────

    async def is_phase_complete(self, mint: str) -> bool:
        """True once the curve has completed, or when the mint has no curve account."""
        try:
            curve = await self._state.load_bonding_curve(Pubkey.from_string(mint))
        except AccountNotFound:
            return True
        return curve.state.complete

    async def get_trade_mode(self, mint: str) -> TradeMode:
        return TradeMode.AMM if await self.is_phase_complete(mint) else TradeMode.BONDING

    async def quote_price(self, mint: str) -> PriceQuote:
        """Spot price in SOL per token: curve probe while open, pool ratio after."""
        mint_pk = Pubkey.from_string(mint)
        curve = await self._state.load_bonding_curve(mint_pk)
        if curve.state.complete:
            pool = await self._state.load_pool(mint_pk)
            reserves = await self._state.load_pool_reserves(pool.keys)
            return PriceQuote(price=pricing.amm_spot_price(reserves), completed=True)
        price = pricing.curve_spot_price(curve.state, PRICE_PROBE_TOKEN_AMOUNT)
        return PriceQuote(price=price, completed=False)

    # ─── Unified entry points ────────────────────────────────────────

    async def auto_buy(
        self, mint: str, total_sol_in: int, options: TradeOptions | None = None
    ) -> TradeOutcome:
        if await self.get_trade_mode(mint) is TradeMode.BONDING:
            return await self.buy(mint, total_sol_in, options)
        return await self.amm_buy(mint, total_sol_in, options)

    async def auto_sell(
        self, mint: str, total_token_in: int, options: TradeOptions | None = None
    ) -> TradeOutcome:
        if await self.get_trade_mode(mint) is TradeMode.BONDING:
            return await self.sell(mint, total_token_in, options)
        return await self.amm_sell(mint, total_token_in, options)

    # ─── Shared instruction pieces ───────────────────────────────────

    def _budget(self, unit_limit: int, opts: TradeOptions) -> list[Instruction]:
        return compute_budget_instructions(
            unit_limit, pricing.priority_fee(opts.priority, self._rng)
        )

    async def _ensure_ata(self, ata: Pubkey, mint: Pubkey, token_program: Pubkey) -> list[Instruction]:
        if await self._state.account_exists(ata):
            return []
        return [create_associated_token_account(self._wallet.pubkey, self._wallet.pubkey, mint, token_program)]

    # ─── Bonding curve ───────────────────────────────────────────────

    async def buy(
        self, mint: str, total_sol_in: int, options: TradeOptions | None = None
    ) -> TradeOutcome:
        """Buy on the curve with total_sol_in lamports, split by max_sol_per_tx."""
        _require_positive(total_sol_in, "total_sol_in")
        opts = options or self._options
        mint_pk = Pubkey.from_string(mint)

        token_program = await self._state.detect_token_program(mint_pk)
        global_config = await self._state.load_global_config()
        curve = await self._state.load_bonding_curve(mint_pk)
        accounts = CurveAccounts.resolve(
            global_config=global_config,
            curve=curve,
            user=self._wallet.pubkey,
            token_program=token_program.program_id,
        )
        plan = plan_buy(total_sol_in, opts.max_sol_per_tx)
        state = curve.state
        logger.info(
            f"[TRADER] Curve BUY {mint[:12]}: {total_sol_in / LAMPORTS_PER_SOL:.4f} SOL "
            f"in {len(plan)} sub-order(s)"
        )

        async def build(index: int, sol_in: int) -> list[Instruction]:
            token_out = pricing.curve_buy_output(sol_in, state)
            slippage_bps = pricing.calc_slippage_bps(
                sol_in, state.virtual_sol_reserves, opts.slippage
            )
            max_sol_cost = pricing.max_cost_with_slippage(sol_in, slippage_bps)
            ixs = self._budget(self._curve_cu_limit, opts)
            ixs += await self._ensure_ata(accounts.user_ata, mint_pk, accounts.token_program)
            ixs.append(build_curve_buy(accounts, token_out, max_sol_cost))
            return ixs

        return await self._executor.execute(plan, build, label=f"BUY {mint[:12]}")

    async def sell(
        self, mint: str, total_token_in: int, options: TradeOptions | None = None
    ) -> TradeOutcome:
        """Sell total_token_in raw tokens on the curve, split by estimated proceeds."""
        _require_positive(total_token_in, "total_token_in")
        opts = options or self._options
        mint_pk = Pubkey.from_string(mint)

        token_program = await self._state.detect_token_program(mint_pk)
        global_config = await self._state.load_global_config()
        curve = await self._state.load_bonding_curve(mint_pk)
        accounts = CurveAccounts.resolve(
            global_config=global_config,
            curve=curve,
            user=self._wallet.pubkey,
            token_program=token_program.program_id,
        )
        state = curve.state
        estimated_out = pricing.curve_sell_output(total_token_in, state)
        plan = plan_sell(total_token_in, estimated_out, opts.max_sol_per_tx)
        logger.info(
            f"[TRADER] Curve SELL {mint[:12]}: {total_token_in} tokens "
            f"(~{estimated_out / LAMPORTS_PER_SOL:.4f} SOL) in {len(plan)} sub-order(s)"
        )

        async def build(index: int, token_in: int) -> list[Instruction]:
            sol_out = pricing.curve_sell_output(token_in, state)
            slippage_bps = pricing.calc_slippage_bps(
                token_in, state.virtual_token_reserves, opts.slippage
            )
            min_sol_output = pricing.min_output_with_slippage(sol_out, slippage_bps)
            ixs = self._budget(self._curve_cu_limit, opts)
            ixs.append(build_curve_sell(accounts, token_in, min_sol_output))
            return ixs

        return await self._executor.execute(plan, build, label=f"SELL {mint[:12]}")

    # ─── AMM ─────────────────────────────────────────────────────────

    async def amm_buy(
        self, mint: str, total_sol_in: int, options: TradeOptions | None = None
    ) -> TradeOutcome:
        """Buy from the migrated pool; WSOL is wrapped per sub-order and closed after."""
        _require_positive(total_sol_in, "total_sol_in")
        opts = options or self._options
        mint_pk = Pubkey.from_string(mint)

        pool = await self._state.load_pool(mint_pk)
        reserves = await self._state.load_pool_reserves(pool.keys)
        plan = plan_buy(total_sol_in, opts.max_sol_per_tx)
        token_program = await self._state.detect_token_program(mint_pk)
        accounts = AmmAccounts.resolve(
            pool=pool, user=self._wallet.pubkey, base_token_program=token_program.program_id
        )
        user = self._wallet.pubkey
        logger.info(
            f"[TRADER] AMM BUY {mint[:12]}: {total_sol_in / LAMPORTS_PER_SOL:.4f} SOL "
            f"in {len(plan)} sub-order(s)"
        )

        async def build(index: int, sol_in: int) -> list[Instruction]:
            base_out = pricing.amm_buy_output(sol_in, reserves)
            slippage_bps = pricing.calc_slippage_bps(sol_in, reserves.quote_amount, opts.slippage)
            max_quote_in = pricing.max_cost_with_slippage(sol_in, slippage_bps)
            ixs = self._budget(self._amm_cu_limit, opts)
            ixs += await self._ensure_ata(accounts.user_base_ata, pool.keys.base_mint, accounts.base_token_program)
            ixs += await self._ensure_ata(accounts.user_quote_ata, WSOL_MINT, TOKEN_PROGRAM_ID)
            ixs += wrap_sol_instructions(user, accounts.user_quote_ata, max_quote_in)
            ixs.append(build_amm_buy(accounts, base_out, max_quote_in))
            ixs.append(close_account(accounts.user_quote_ata, user, user))
            return ixs

        return await self._executor.execute(plan, build, label=f"AMM BUY {mint[:12]}")

    async def amm_sell(
        self, mint: str, total_token_in: int, options: TradeOptions | None = None
    ) -> TradeOutcome:
        """Sell into the migrated pool; proceeds land in WSOL which is closed to SOL."""
        _require_positive(total_token_in, "total_token_in")
        opts = options or self._options
        mint_pk = Pubkey.from_string(mint)

        pool = await self._state.load_pool(mint_pk)
        reserves = await self._state.load_pool_reserves(pool.keys)
        estimated_out = pricing.amm_sell_output(total_token_in, reserves)
        token_program = await self._state.detect_token_program(mint_pk)
        plan = plan_sell(total_token_in, estimated_out, opts.max_sol_per_tx)
        accounts = AmmAccounts.resolve(
            pool=pool, user=self._wallet.pubkey, base_token_program=token_program.program_id
        )
        user = self._wallet.pubkey
        logger.info(
            f"[TRADER] AMM SELL {mint[:12]}: {total_token_in} tokens "
            f"(~{estimated_out / LAMPORTS_PER_SOL:.4f} SOL) in {len(plan)} sub-order(s)"
        )

        async def build(index: int, token_in: int) -> list[Instruction]:
            quote_out = pricing.amm_sell_output(token_in, reserves)
            slippage_bps = pricing.calc_slippage_bps(token_in, reserves.base_amount, opts.slippage)
            min_quote_out = pricing.min_output_with_slippage(quote_out, slippage_bps)
            ixs = self._budget(self._amm_cu_limit, opts)
            ixs += await self._ensure_ata(accounts.user_base_ata, pool.keys.base_mint, accounts.base_token_program)
            ixs += await self._ensure_ata(accounts.user_quote_ata, WSOL_MINT, TOKEN_PROGRAM_ID)
            ixs.append(build_amm_sell(accounts, token_in, min_quote_out))
            ixs.append(close_account(accounts.user_quote_ata, user, user))
            return ixs

        return await self._executor.execute(plan, build, label=f"AMM SELL {mint[:12]}")

    # ─── Balances ────────────────────────────────────────────────────

    async def sol_balance(self) -> float:
        lamports = await self._rpc.get_balance(self._wallet.pubkey)
        return lamports / LAMPORTS_PER_SOL

    async def token_balance(self, mint: str) -> float:
        """UI balance of one mint; 0.0 when the wallet holds no account for it."""
        accounts = await self._rpc.get_parsed_token_accounts_by_owner(
            self._wallet.pubkey, mint=Pubkey.from_string(mint)
        )
        return accounts[0].ui_amount if accounts else 0.0

    async def all_token_balances(self) -> list[TokenBalance]:
        """Non-zero balances across both token programs, one entry per mint."""
        seen: set[str] = set()
        balances: list[TokenBalance] = []
        for program_id in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID):
            accounts = await self._rpc.get_parsed_token_accounts_by_owner(
                self._wallet.pubkey, program_id=program_id
            )
            for balance in accounts:
                if balance.amount == 0 or balance.mint in seen:
                    continue
                seen.add(balance.mint)
                balances.append(balance)
        return balances

    # ─── Confirmation / events / metadata ────────────────────────────

    async def confirm_transaction(
        self,
        signature: str,
        last_valid_block_height: int,
        *,
        max_attempts: int | None = None,
        delay: float | None = None,
    ) -> str:
        return await self._poller.confirm(
            signature,
            last_valid_block_height,
            max_attempts=self._confirm_max_attempts if max_attempts is None else max_attempts,
            delay=self._confirm_delay if delay is None else delay,
        )

    async def listen_trades(
        self, handler: TradeHandler, mint_filter: str | None = None
    ) -> TradeSubscription:
        """Stream curve TradeEvents to handler until the returned handle unsubscribes."""
        if not self._ws_url:
            raise ValueError("WebSocket URL is empty")
        if self._stream is None:
            self._stream = TradeStreamClient(self._ws_url)
        mint_pk = Pubkey.from_string(mint_filter) if mint_filter else None
        return self._stream.subscribe(handler, mint_pk)

    async def fetch_metadata(self, mint: str) -> TokenMetadata | None:
        return await self._state.fetch_metadata(Pubkey.from_string(mint))

    async def close(self) -> None:
        if self._stream is not None:
            await self._stream.stop()
        await self._rpc.close()
