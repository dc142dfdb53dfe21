"""Shared test fixtures: fake RPC, wallet, and raw account encoders.

No test touches a real RPC node. Account fixtures are encoded byte-for-byte
in the on-chain layouts so the real decoders run against them.
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade.codec import POOL_MIN_SIZE
from pumptrade.constants import WSOL_MINT
from pumptrade.models import AccountInfo, PriorityOptions, SlippageOptions, TradeOptions
from pumptrade.rpc import SolanaRpcClient
from pumptrade.wallet import SolanaWallet

ANCHOR_DISCRIMINATOR = bytes(8)


def new_pubkey() -> Pubkey:
    return Keypair().pubkey()


# ── Account encoders ───────────────────────────────────────────────────


def encode_bonding_curve(
    *,
    virtual_token: int = 1_000_000_000,
    virtual_sol: int = 30_000_000_000,
    real_token: int = 800_000_000,
    real_sol: int = 0,
    supply: int = 1_000_000_000_000_000,
    complete: bool = False,
    creator: Pubkey | None = None,
) -> bytes:
    return (
        ANCHOR_DISCRIMINATOR
        + struct.pack("<QQQQQ", virtual_token, virtual_sol, real_token, real_sol, supply)
        + bytes([1 if complete else 0])
        + bytes(creator or new_pubkey())
    )


def encode_global_config(*, fee_recipient: Pubkey | None = None, fee_bps: int = 95) -> bytes:
    return (
        ANCHOR_DISCRIMINATOR
        + b"\x01"
        + bytes(new_pubkey())
        + bytes(fee_recipient or new_pubkey())
        + bytes(new_pubkey())
        + struct.pack(
            "<QQQQQ",
            1_073_000_000_000_000,
            30_000_000_000,
            793_100_000_000_000,
            1_000_000_000_000_000,
            fee_bps,
        )
    )


def encode_pool(
    *,
    base_mint: Pubkey,
    pool_base_token_account: Pubkey,
    pool_quote_token_account: Pubkey,
    coin_creator: Pubkey | None = None,
    quote_mint: Pubkey = WSOL_MINT,
    size: int = POOL_MIN_SIZE,
) -> bytes:
    body = (
        ANCHOR_DISCRIMINATOR
        + bytes([254])
        + struct.pack("<H", 0)
        + bytes(new_pubkey())  # creator
        + bytes(base_mint)
        + bytes(quote_mint)
        + bytes(new_pubkey())  # lp_mint
        + bytes(pool_base_token_account)
        + bytes(pool_quote_token_account)
        + struct.pack("<Q", 4_193_388_000_000)
        + bytes(coin_creator or new_pubkey())
        + b"\x00"
    )
    return body + bytes(max(size - len(body), 0))


def encode_amm_global_config(*, recipients: list[Pubkey] | None = None) -> bytes:
    slots = list(recipients or [new_pubkey()])
    slots += [Pubkey.default()] * (8 - len(slots))
    return (
        ANCHOR_DISCRIMINATOR
        + bytes(new_pubkey())  # admin
        + struct.pack("<QQ", 20, 5)
        + b"\x00"
        + b"".join(bytes(p) for p in slots)
    )


def mint_account(owner: Pubkey, data: bytes | None = None) -> AccountInfo:
    return AccountInfo(data=data if data is not None else bytes(82), owner=owner, lamports=1_461_600)


def program_account(data: bytes, owner: Pubkey | None = None) -> AccountInfo:
    return AccountInfo(data=data, owner=owner or new_pubkey(), lamports=2_000_000)


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def wallet(keypair: Keypair) -> SolanaWallet:
    return SolanaWallet(keypair)


@pytest.fixture
def rpc() -> AsyncMock:
    """SolanaRpcClient double; every coroutine method is an AsyncMock."""
    return AsyncMock(spec=SolanaRpcClient)


@pytest.fixture
def serve_accounts(rpc: AsyncMock) -> Callable[[dict[Pubkey, AccountInfo]], dict[str, AccountInfo]]:
    """Route rpc.get_account_info through an address -> AccountInfo map.

    Returns the live map so tests can add or drop accounts mid-test.
    """

    def install(accounts: dict[Pubkey, AccountInfo]) -> dict[str, AccountInfo]:
        table = {str(k): v for k, v in accounts.items()}

        async def get_account_info(address: Pubkey) -> AccountInfo | None:
            return table.get(str(address))

        rpc.get_account_info.side_effect = get_account_info
        return table

    return install


@pytest.fixture
def trade_options() -> TradeOptions:
    return TradeOptions(
        max_sol_per_tx=1_000_000_000,
        slippage=SlippageOptions(base=300, min=100, max=3000),
        priority=PriorityOptions(base=100_000),
    )
