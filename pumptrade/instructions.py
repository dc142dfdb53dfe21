"""Instruction builders for curve and AMM buy/sell.

Account order and signer/writable flags are fixed by the on-chain programs.
A reordered or missing account is not a decode error, the transaction is
simply rejected, so each list below must match the program byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass

from solders.compute_budget import (  # type: ignore[import-untyped]
    set_compute_unit_limit,
    set_compute_unit_price,
)
from solders.instruction import AccountMeta, Instruction  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.system_program import TransferParams, transfer  # type: ignore[import-untyped]

from pumptrade import pda
from pumptrade.codec import encode_u64
from pumptrade.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    BUY_DISCRIMINATOR,
    PUMP_AMM_PROGRAM_ID,
    PUMP_EVENT_AUTHORITY,
    PUMP_FEE_PROGRAM_ID,
    PUMP_PROGRAM_ID,
    SELL_DISCRIMINATOR,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TRACK_VOLUME_FLAG,
    WSOL_MINT,
)
from pumptrade.exceptions import CurveAlreadyComplete
from pumptrade.models import BondingCurveInfo, GlobalConfig, PoolInfo

# SPL token instruction tags
_TOKEN_IX_CLOSE_ACCOUNT = 9
_TOKEN_IX_SYNC_NATIVE = 17
_ATA_IX_CREATE_IDEMPOTENT = 1


def _meta(pubkey: Pubkey, *, signer: bool = False, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=signer, is_writable=writable)


def _min_bound(value: int) -> int:
    """The programs reject a literal zero minimum-receipt bound."""
    return value if value > 0 else 1


# ── Resolved account sets ─────────────────────────────────────────────


@dataclass(frozen=True)
class CurveAccounts:
    """Every account a curve buy/sell references, for one user and mint."""

    global_config: Pubkey
    fee_recipient: Pubkey
    mint: Pubkey
    bonding_curve: Pubkey
    associated_bonding_curve: Pubkey
    user_ata: Pubkey
    user: Pubkey
    token_program: Pubkey
    creator_vault: Pubkey
    global_volume_accumulator: Pubkey
    user_volume_accumulator: Pubkey
    fee_config: Pubkey

    @classmethod
    def resolve(
        cls,
        *,
        global_config: GlobalConfig,
        curve: BondingCurveInfo,
        user: Pubkey,
        token_program: Pubkey,
    ) -> CurveAccounts:
        """Derive the account set. Fails fast once the curve has migrated."""
        if curve.state.complete:
            raise CurveAlreadyComplete(str(curve.mint))
        return cls(
            global_config=global_config.address,
            fee_recipient=global_config.fee_recipient,
            mint=curve.mint,
            bonding_curve=curve.address,
            associated_bonding_curve=pda.associated_token_address(
                curve.address, curve.mint, token_program
            ),
            user_ata=pda.associated_token_address(user, curve.mint, token_program),
            user=user,
            token_program=token_program,
            creator_vault=pda.creator_vault_pda(curve.state.creator),
            global_volume_accumulator=pda.global_volume_accumulator_pda(),
            user_volume_accumulator=pda.user_volume_accumulator_pda(user),
            fee_config=pda.fee_config_pda(),
        )


@dataclass(frozen=True)
class AmmAccounts:
    """Every account an AMM buy/sell references, for one user and pool."""

    pool: Pubkey
    user: Pubkey
    global_config: Pubkey
    base_mint: Pubkey
    quote_mint: Pubkey
    user_base_ata: Pubkey
    user_quote_ata: Pubkey
    pool_base_token_account: Pubkey
    pool_quote_token_account: Pubkey
    protocol_fee_recipient: Pubkey
    protocol_fee_recipient_ata: Pubkey
    base_token_program: Pubkey
    event_authority: Pubkey
    coin_creator_vault_ata: Pubkey
    coin_creator_vault_authority: Pubkey
    global_volume_accumulator: Pubkey
    user_volume_accumulator: Pubkey
    fee_config: Pubkey

    @classmethod
    def resolve(cls, *, pool: PoolInfo, user: Pubkey, base_token_program: Pubkey) -> AmmAccounts:
        keys = pool.keys
        fee_recipient = pool.global_config.active_fee_recipient
        vault_authority = pda.coin_creator_vault_authority_pda(keys.coin_creator)
        return cls(
            pool=pool.pool,
            user=user,
            global_config=pool.global_config.address,
            base_mint=keys.base_mint,
            quote_mint=keys.quote_mint,
            user_base_ata=pda.associated_token_address(user, keys.base_mint, base_token_program),
            user_quote_ata=pda.associated_token_address(user, WSOL_MINT, TOKEN_PROGRAM_ID),
            pool_base_token_account=keys.pool_base_token_account,
            pool_quote_token_account=keys.pool_quote_token_account,
            protocol_fee_recipient=fee_recipient,
            protocol_fee_recipient_ata=pda.associated_token_address(
                fee_recipient, WSOL_MINT, TOKEN_PROGRAM_ID
            ),
            base_token_program=base_token_program,
            event_authority=pda.amm_event_authority_pda(),
            coin_creator_vault_ata=pda.associated_token_address(
                vault_authority, WSOL_MINT, TOKEN_PROGRAM_ID
            ),
            coin_creator_vault_authority=vault_authority,
            global_volume_accumulator=pda.global_volume_accumulator_pda(PUMP_AMM_PROGRAM_ID),
            user_volume_accumulator=pda.user_volume_accumulator_pda(user, PUMP_AMM_PROGRAM_ID),
            fee_config=pda.amm_fee_config_pda(),
        )


# ── Curve program ─────────────────────────────────────────────────────


def build_curve_buy(accounts: CurveAccounts, token_amount: int, max_sol_cost: int) -> Instruction:
    a = accounts
    metas = [
        _meta(a.global_config),
        _meta(a.fee_recipient, writable=True),
        _meta(a.mint),
        _meta(a.bonding_curve, writable=True),
        _meta(a.associated_bonding_curve, writable=True),
        _meta(a.user_ata, writable=True),
        _meta(a.user, signer=True, writable=True),
        _meta(SYSTEM_PROGRAM_ID),
        _meta(a.token_program),
        _meta(a.creator_vault, writable=True),
        _meta(PUMP_EVENT_AUTHORITY),
        _meta(PUMP_PROGRAM_ID),
        _meta(a.global_volume_accumulator),
        _meta(a.user_volume_accumulator, writable=True),
        _meta(a.fee_config),
        _meta(PUMP_FEE_PROGRAM_ID),
    ]
    data = BUY_DISCRIMINATOR + encode_u64(token_amount) + encode_u64(max_sol_cost)
    return Instruction(PUMP_PROGRAM_ID, data, metas)


def build_curve_sell(accounts: CurveAccounts, token_amount: int, min_sol_output: int) -> Instruction:
    a = accounts
    # creator_vault precedes token_program here, unlike buy
    metas = [
        _meta(a.global_config),
        _meta(a.fee_recipient, writable=True),
        _meta(a.mint),
        _meta(a.bonding_curve, writable=True),
        _meta(a.associated_bonding_curve, writable=True),
        _meta(a.user_ata, writable=True),
        _meta(a.user, signer=True, writable=True),
        _meta(SYSTEM_PROGRAM_ID),
        _meta(a.creator_vault, writable=True),
        _meta(a.token_program),
        _meta(PUMP_EVENT_AUTHORITY),
        _meta(PUMP_PROGRAM_ID),
        _meta(a.fee_config),
        _meta(PUMP_FEE_PROGRAM_ID),
    ]
    data = SELL_DISCRIMINATOR + encode_u64(token_amount) + encode_u64(_min_bound(min_sol_output))
    return Instruction(PUMP_PROGRAM_ID, data, metas)


# ── AMM program ───────────────────────────────────────────────────────


def _amm_leading_metas(a: AmmAccounts) -> list[AccountMeta]:
    return [
        _meta(a.pool, writable=True),
        _meta(a.user, signer=True, writable=True),
        _meta(a.global_config),
        _meta(a.base_mint),
        _meta(a.quote_mint),
        _meta(a.user_base_ata, writable=True),
        _meta(a.user_quote_ata, writable=True),
        _meta(a.pool_base_token_account, writable=True),
        _meta(a.pool_quote_token_account, writable=True),
        _meta(a.protocol_fee_recipient),
        _meta(a.protocol_fee_recipient_ata, writable=True),
        _meta(a.base_token_program),
        _meta(TOKEN_PROGRAM_ID),
        _meta(SYSTEM_PROGRAM_ID),
        _meta(ASSOCIATED_TOKEN_PROGRAM_ID),
        _meta(a.event_authority),
        _meta(PUMP_AMM_PROGRAM_ID),
        _meta(a.coin_creator_vault_ata, writable=True),
        _meta(a.coin_creator_vault_authority),
    ]


def build_amm_buy(accounts: AmmAccounts, base_amount_out: int, max_quote_in: int) -> Instruction:
    metas = _amm_leading_metas(accounts) + [
        _meta(accounts.global_volume_accumulator),
        _meta(accounts.user_volume_accumulator, writable=True),
        _meta(accounts.fee_config),
        _meta(PUMP_FEE_PROGRAM_ID),
    ]
    data = (
        BUY_DISCRIMINATOR
        + encode_u64(base_amount_out)
        + encode_u64(max_quote_in)
        + TRACK_VOLUME_FLAG
    )
    return Instruction(PUMP_AMM_PROGRAM_ID, data, metas)


def build_amm_sell(accounts: AmmAccounts, base_amount_in: int, min_quote_out: int) -> Instruction:
    metas = _amm_leading_metas(accounts) + [
        _meta(accounts.fee_config),
        _meta(PUMP_FEE_PROGRAM_ID),
    ]
    data = SELL_DISCRIMINATOR + encode_u64(base_amount_in) + encode_u64(_min_bound(min_quote_out))
    return Instruction(PUMP_AMM_PROGRAM_ID, data, metas)


# ── Compute budget / token account setup ──────────────────────────────


def compute_budget_instructions(unit_limit: int, micro_lamports: int) -> list[Instruction]:
    return [set_compute_unit_limit(unit_limit), set_compute_unit_price(micro_lamports)]


def create_associated_token_account(
    payer: Pubkey, owner: Pubkey, mint: Pubkey, token_program: Pubkey
) -> Instruction:
    ata = pda.associated_token_address(owner, mint, token_program)
    metas = [
        _meta(payer, signer=True, writable=True),
        _meta(ata, writable=True),
        _meta(owner),
        _meta(mint),
        _meta(SYSTEM_PROGRAM_ID),
        _meta(token_program),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([_ATA_IX_CREATE_IDEMPOTENT]), metas)


def sync_native(account: Pubkey) -> Instruction:
    return Instruction(TOKEN_PROGRAM_ID, bytes([_TOKEN_IX_SYNC_NATIVE]), [_meta(account, writable=True)])


def wrap_sol_instructions(owner: Pubkey, wsol_account: Pubkey, lamports: int) -> list[Instruction]:
    """Fund the owner's WSOL account and sync its token balance."""
    return [
        transfer(TransferParams(from_pubkey=owner, to_pubkey=wsol_account, lamports=lamports)),
        sync_native(wsol_account),
    ]


def close_account(account: Pubkey, destination: Pubkey, owner: Pubkey) -> Instruction:
    metas = [
        _meta(account, writable=True),
        _meta(destination, writable=True),
        _meta(owner, signer=True),
    ]
    return Instruction(TOKEN_PROGRAM_ID, bytes([_TOKEN_IX_CLOSE_ACCOUNT]), metas)
