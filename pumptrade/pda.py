"""Program-derived address helpers.

Seed order is part of each program's contract; every helper below passes
seeds in exactly the order the on-chain program hashes them.
"""

from __future__ import annotations

from collections.abc import Sequence

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade.constants import (
    AMM_FEE_CONFIG_SEED,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    CANONICAL_POOL_INDEX,
    CURVE_FEE_CONFIG_SEED,
    METADATA_PROGRAM_ID,
    PUMP_AMM_PROGRAM_ID,
    PUMP_FEE_PROGRAM_ID,
    PUMP_PROGRAM_ID,
    SEED_AMM_CREATOR_VAULT,
    SEED_AMM_GLOBAL_CONFIG,
    SEED_BONDING_CURVE,
    SEED_CREATOR_VAULT,
    SEED_EVENT_AUTHORITY,
    SEED_FEE_CONFIG,
    SEED_GLOBAL,
    SEED_GLOBAL_VOLUME_ACCUMULATOR,
    SEED_METADATA,
    SEED_POOL,
    SEED_POOL_AUTHORITY,
    SEED_USER_VOLUME_ACCUMULATOR,
    WSOL_MINT,
)
from pumptrade.exceptions import AddressDerivationExhausted


def derive(program_id: Pubkey, seeds: Sequence[bytes]) -> tuple[Pubkey, int]:
    """Find the first off-curve address for seeds + [bump], bump from 255 down."""
    for bump in range(255, -1, -1):
        try:
            address = Pubkey.create_program_address([*seeds, bytes([bump])], program_id)
        except Exception:  # candidate lands on the ed25519 curve
            continue
        return address, bump
    raise AddressDerivationExhausted(str(program_id))


def _address(program_id: Pubkey, *seeds: bytes) -> Pubkey:
    return derive(program_id, seeds)[0]


# ── Curve program ─────────────────────────────────────────────────────


def global_pda() -> Pubkey:
    return _address(PUMP_PROGRAM_ID, SEED_GLOBAL)


def bonding_curve_pda(mint: Pubkey) -> Pubkey:
    return _address(PUMP_PROGRAM_ID, SEED_BONDING_CURVE, bytes(mint))


def creator_vault_pda(creator: Pubkey) -> Pubkey:
    return _address(PUMP_PROGRAM_ID, SEED_CREATOR_VAULT, bytes(creator))


def global_volume_accumulator_pda(program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return _address(program_id, SEED_GLOBAL_VOLUME_ACCUMULATOR)


def user_volume_accumulator_pda(user: Pubkey, program_id: Pubkey = PUMP_PROGRAM_ID) -> Pubkey:
    return _address(program_id, SEED_USER_VOLUME_ACCUMULATOR, bytes(user))


def fee_config_pda(seed: bytes = CURVE_FEE_CONFIG_SEED) -> Pubkey:
    return _address(PUMP_FEE_PROGRAM_ID, SEED_FEE_CONFIG, seed)


def pool_authority_pda(mint: Pubkey) -> Pubkey:
    return _address(PUMP_PROGRAM_ID, SEED_POOL_AUTHORITY, bytes(mint))


# ── AMM program ───────────────────────────────────────────────────────


def pool_pda(
    pool_authority: Pubkey,
    mint: Pubkey,
    quote_mint: Pubkey = WSOL_MINT,
    index: int = CANONICAL_POOL_INDEX,
) -> Pubkey:
    return _address(
        PUMP_AMM_PROGRAM_ID,
        SEED_POOL,
        index.to_bytes(2, "little"),
        bytes(pool_authority),
        bytes(mint),
        bytes(quote_mint),
    )


def amm_global_config_pda() -> Pubkey:
    return _address(PUMP_AMM_PROGRAM_ID, SEED_AMM_GLOBAL_CONFIG)


def amm_event_authority_pda() -> Pubkey:
    return _address(PUMP_AMM_PROGRAM_ID, SEED_EVENT_AUTHORITY)


def coin_creator_vault_authority_pda(coin_creator: Pubkey) -> Pubkey:
    return _address(PUMP_AMM_PROGRAM_ID, SEED_AMM_CREATOR_VAULT, bytes(coin_creator))


def amm_fee_config_pda() -> Pubkey:
    return fee_config_pda(AMM_FEE_CONFIG_SEED)


# ── Token accounts / metadata ─────────────────────────────────────────


def associated_token_address(owner: Pubkey, mint: Pubkey, token_program: Pubkey) -> Pubkey:
    """ATA address; off-curve owners (PDAs) are allowed."""
    return _address(
        ASSOCIATED_TOKEN_PROGRAM_ID, bytes(owner), bytes(token_program), bytes(mint)
    )


def metadata_pda(mint: Pubkey) -> Pubkey:
    return _address(
        METADATA_PROGRAM_ID, SEED_METADATA, bytes(METADATA_PROGRAM_ID), bytes(mint)
    )
