"""Fetch and decode curve/AMM program state.

Owns the only mutable engine state: the per-mint token-program cache and the
load-once curve GlobalConfig. Curve state, pool keys and pool reserves change
with every trade and are always fetched fresh.
"""

from __future__ import annotations

import asyncio
from enum import Enum

from loguru import logger
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade import pda
from pumptrade.codec import (
    decode_amm_global_config,
    decode_bonding_curve,
    decode_global_config,
    decode_metadata_account,
    decode_pool_keys,
    decode_token2022_metadata,
    is_mint_of_program,
)
from pumptrade.exceptions import AccountNotFound, TokenProgramDetectionFailed
from pumptrade.models import (
    AccountInfo,
    BondingCurveInfo,
    GlobalConfig,
    PoolInfo,
    PoolKeys,
    PoolReserves,
    TokenMetadata,
    TokenProgram,
)
from pumptrade.rpc import SolanaRpcClient

# Trial order for token-program detection
TOKEN_PROGRAM_TRIAL_ORDER = (TokenProgram.TOKEN_2022, TokenProgram.TOKEN)


class DetectionState(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class StateReader:
    def __init__(self, rpc: SolanaRpcClient) -> None:
        self._rpc = rpc
        self._global_address = pda.global_pda()
        self._global_config: GlobalConfig | None = None
        self._token_programs: dict[str, TokenProgram] = {}

    @property
    def global_address(self) -> Pubkey:
        return self._global_address

    async def _require_account(self, address: Pubkey, what: str) -> AccountInfo:
        account = await self._rpc.get_account_info(address)
        if account is None:
            raise AccountNotFound(str(address), what)
        return account

    async def account_exists(self, address: Pubkey) -> bool:
        return await self._rpc.get_account_info(address) is not None

    # ─── Curve program ───────────────────────────────────────────────

    async def load_global_config(self, *, refresh: bool = False) -> GlobalConfig:
        """Curve GlobalConfig, fetched on first use and cached afterwards."""
        if self._global_config is None or refresh:
            account = await self._require_account(self._global_address, "global config")
            self._global_config = decode_global_config(self._global_address, account.data)
            logger.debug(
                f"[STATE] Global config loaded: fee_recipient={self._global_config.fee_recipient}"
            )
        return self._global_config

    async def load_bonding_curve(self, mint: Pubkey) -> BondingCurveInfo:
        address = pda.bonding_curve_pda(mint)
        account = await self._require_account(address, "bonding curve")
        state = decode_bonding_curve(address, account.data)
        return BondingCurveInfo(address=address, mint=mint, state=state)

    # ─── AMM program ─────────────────────────────────────────────────

    async def load_pool(self, mint: Pubkey) -> PoolInfo:
        """Canonical (index 0, WSOL-quoted) pool of a migrated mint plus AMM global config."""
        pool_authority = pda.pool_authority_pda(mint)
        pool = pda.pool_pda(pool_authority, mint)
        config_address = pda.amm_global_config_pda()

        pool_account = await self._require_account(pool, "AMM pool")
        keys = decode_pool_keys(pool, pool_account.data)

        config_account = await self._require_account(config_address, "AMM global config")
        global_config = decode_amm_global_config(config_address, config_account.data)

        return PoolInfo(
            pool=pool,
            pool_authority=pool_authority,
            keys=keys,
            global_config=global_config,
        )

    async def load_pool_reserves(self, keys: PoolKeys) -> PoolReserves:
        base, quote = await asyncio.gather(
            self._rpc.get_token_account_balance(keys.pool_base_token_account),
            self._rpc.get_token_account_balance(keys.pool_quote_token_account),
        )
        return PoolReserves(
            base_amount=base.amount,
            quote_amount=quote.amount,
            base_decimals=base.decimals,
            quote_decimals=quote.decimals,
        )

    # ─── Token program detection ─────────────────────────────────────

    async def detect_token_program(self, mint: Pubkey) -> TokenProgram:
        """Token-2022 or classic Token, cached per mint for this reader's lifetime."""
        key = str(mint)
        cached = self._token_programs.get(key)
        if cached is not None:
            return cached

        account = await self._rpc.get_account_info(mint)
        if account is None:
            raise TokenProgramDetectionFailed(key)

        state = DetectionState.PENDING
        detected = TOKEN_PROGRAM_TRIAL_ORDER[0]
        for candidate in TOKEN_PROGRAM_TRIAL_ORDER:
            if is_mint_of_program(account.data, account.owner, candidate.program_id):
                state = DetectionState.RESOLVED
                detected = candidate
                break

        if state is DetectionState.PENDING:
            raise TokenProgramDetectionFailed(key)

        self._token_programs[key] = detected
        logger.debug(f"[STATE] {key[:12]} uses {detected.value}")
        return detected

    def cached_token_program(self, mint: Pubkey | str) -> TokenProgram | None:
        return self._token_programs.get(str(mint))

    def evict_token_program(self, mint: Pubkey | str | None = None) -> None:
        """Drop one mint's entry, or the whole cache when mint is None."""
        if mint is None:
            self._token_programs.clear()
        else:
            self._token_programs.pop(str(mint), None)

    # ─── Metadata ────────────────────────────────────────────────────

    async def fetch_metadata(self, mint: Pubkey) -> TokenMetadata | None:
        """Token-2022 metadata extension first, then the Metaplex metadata account."""
        mint_account = await self._rpc.get_account_info(mint)
        if mint_account is not None and mint_account.owner == TokenProgram.TOKEN_2022.program_id:
            meta = decode_token2022_metadata(mint, mint_account.data)
            if meta is not None:
                return meta

        metadata_address = pda.metadata_pda(mint)
        account = await self._rpc.get_account_info(metadata_address)
        if account is None:
            return None
        return decode_metadata_account(metadata_address, account.data)
