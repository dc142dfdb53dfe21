"""Tests for StateReader: fresh reads, global config memo, token-program cache."""

from __future__ import annotations

import struct
from unittest.mock import AsyncMock

import pytest
from conftest import (
    encode_amm_global_config,
    encode_bonding_curve,
    encode_global_config,
    encode_pool,
    mint_account,
    new_pubkey,
    program_account,
)

from pumptrade import pda
from pumptrade.constants import PUMP_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from pumptrade.exceptions import AccountNotFound, MalformedAccount, TokenProgramDetectionFailed
from pumptrade.models import TokenAmount, TokenProgram
from pumptrade.state import StateReader


@pytest.fixture
def reader(rpc: AsyncMock) -> StateReader:
    return StateReader(rpc)


def _borsh_string(value: str) -> bytes:
    return struct.pack("<I", len(value)) + value.encode()


# ── Curve program state ────────────────────────────────────────────────


class TestGlobalConfig:
    async def test_loaded_once(self, reader: StateReader, rpc: AsyncMock, serve_accounts):
        recipient = new_pubkey()
        serve_accounts({reader.global_address: program_account(encode_global_config(fee_recipient=recipient))})

        first = await reader.load_global_config()
        second = await reader.load_global_config()

        assert first is second
        assert first.fee_recipient == recipient
        assert rpc.get_account_info.await_count == 1

    async def test_refresh_refetches(self, reader: StateReader, rpc: AsyncMock, serve_accounts):
        serve_accounts({reader.global_address: program_account(encode_global_config())})
        await reader.load_global_config()
        await reader.load_global_config(refresh=True)
        assert rpc.get_account_info.await_count == 2

    async def test_missing(self, reader: StateReader, serve_accounts):
        serve_accounts({})
        with pytest.raises(AccountNotFound, match="global config"):
            await reader.load_global_config()


class TestBondingCurve:
    async def test_read_fresh_every_call(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        address = pda.bonding_curve_pda(mint)
        table = serve_accounts({address: program_account(encode_bonding_curve(virtual_sol=1), PUMP_PROGRAM_ID)})

        first = await reader.load_bonding_curve(mint)
        table[str(address)] = program_account(encode_bonding_curve(virtual_sol=2), PUMP_PROGRAM_ID)
        second = await reader.load_bonding_curve(mint)

        assert first.address == address
        assert first.mint == mint
        assert first.state.virtual_sol_reserves == 1
        assert second.state.virtual_sol_reserves == 2

    async def test_missing(self, reader: StateReader, serve_accounts):
        serve_accounts({})
        with pytest.raises(AccountNotFound, match="bonding curve"):
            await reader.load_bonding_curve(new_pubkey())

    async def test_malformed(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        serve_accounts({pda.bonding_curve_pda(mint): program_account(bytes(40))})
        with pytest.raises(MalformedAccount):
            await reader.load_bonding_curve(mint)


# ── AMM state ──────────────────────────────────────────────────────────


class TestPool:
    async def test_load_pool(self, reader: StateReader, serve_accounts):
        mint, base_vault, quote_vault, recipient = (new_pubkey() for _ in range(4))
        pool_address = pda.pool_pda(pda.pool_authority_pda(mint), mint)
        serve_accounts({
            pool_address: program_account(
                encode_pool(base_mint=mint, pool_base_token_account=base_vault, pool_quote_token_account=quote_vault)
            ),
            pda.amm_global_config_pda(): program_account(encode_amm_global_config(recipients=[recipient])),
        })

        pool = await reader.load_pool(mint)

        assert pool.pool == pool_address
        assert pool.pool_authority == pda.pool_authority_pda(mint)
        assert pool.keys.base_mint == mint
        assert pool.keys.pool_base_token_account == base_vault
        assert pool.global_config.active_fee_recipient == recipient

    async def test_missing_pool(self, reader: StateReader, serve_accounts):
        serve_accounts({pda.amm_global_config_pda(): program_account(encode_amm_global_config())})
        with pytest.raises(AccountNotFound, match="AMM pool"):
            await reader.load_pool(new_pubkey())

    async def test_reserves(self, reader: StateReader, rpc: AsyncMock, serve_accounts):
        mint, base_vault, quote_vault = new_pubkey(), new_pubkey(), new_pubkey()
        serve_accounts({
            pda.pool_pda(pda.pool_authority_pda(mint), mint): program_account(
                encode_pool(base_mint=mint, pool_base_token_account=base_vault, pool_quote_token_account=quote_vault)
            ),
            pda.amm_global_config_pda(): program_account(encode_amm_global_config()),
        })
        balances = {
            str(base_vault): TokenAmount(amount=500_000, decimals=6),
            str(quote_vault): TokenAmount(amount=10_000_000, decimals=9),
        }

        async def balance(address):
            return balances[str(address)]

        rpc.get_token_account_balance.side_effect = balance

        pool = await reader.load_pool(mint)
        reserves = await reader.load_pool_reserves(pool.keys)

        assert reserves.base_amount == 500_000
        assert reserves.quote_amount == 10_000_000
        assert reserves.base_decimals == 6
        assert reserves.quote_decimals == 9


# ── Token program detection ────────────────────────────────────────────


class TestTokenProgramDetection:
    async def test_classic_token(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        serve_accounts({mint: mint_account(TOKEN_PROGRAM_ID)})
        assert await reader.detect_token_program(mint) is TokenProgram.TOKEN

    async def test_token_2022(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        data = bytes(165) + b"\x01" + bytes(100)
        serve_accounts({mint: mint_account(TOKEN_2022_PROGRAM_ID, data)})
        assert await reader.detect_token_program(mint) is TokenProgram.TOKEN_2022

    async def test_cached_after_first_success(self, reader: StateReader, rpc: AsyncMock, serve_accounts):
        mint = new_pubkey()
        serve_accounts({mint: mint_account(TOKEN_PROGRAM_ID)})

        await reader.detect_token_program(mint)
        await reader.detect_token_program(mint)

        assert rpc.get_account_info.await_count == 1
        assert reader.cached_token_program(mint) is TokenProgram.TOKEN
        assert reader.cached_token_program(str(mint)) is TokenProgram.TOKEN

    async def test_evict_single_mint(self, reader: StateReader, rpc: AsyncMock, serve_accounts):
        a, b = new_pubkey(), new_pubkey()
        serve_accounts({a: mint_account(TOKEN_PROGRAM_ID), b: mint_account(TOKEN_2022_PROGRAM_ID)})
        await reader.detect_token_program(a)
        await reader.detect_token_program(b)

        reader.evict_token_program(a)

        assert reader.cached_token_program(a) is None
        assert reader.cached_token_program(b) is TokenProgram.TOKEN_2022
        await reader.detect_token_program(a)
        assert rpc.get_account_info.await_count == 3

    async def test_evict_all(self, reader: StateReader, serve_accounts):
        a, b = new_pubkey(), new_pubkey()
        serve_accounts({a: mint_account(TOKEN_PROGRAM_ID), b: mint_account(TOKEN_PROGRAM_ID)})
        await reader.detect_token_program(a)
        await reader.detect_token_program(b)

        reader.evict_token_program()

        assert reader.cached_token_program(a) is None
        assert reader.cached_token_program(b) is None

    async def test_missing_mint(self, reader: StateReader, serve_accounts):
        serve_accounts({})
        mint = new_pubkey()
        with pytest.raises(TokenProgramDetectionFailed):
            await reader.detect_token_program(mint)
        assert reader.cached_token_program(mint) is None

    async def test_foreign_owner(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        serve_accounts({mint: mint_account(SYSTEM_PROGRAM_ID)})
        with pytest.raises(TokenProgramDetectionFailed):
            await reader.detect_token_program(mint)

    async def test_token_2022_account_not_a_mint(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        data = bytes(165) + b"\x02" + bytes(10)
        serve_accounts({mint: mint_account(TOKEN_2022_PROGRAM_ID, data)})
        with pytest.raises(TokenProgramDetectionFailed):
            await reader.detect_token_program(mint)


# ── Metadata ───────────────────────────────────────────────────────────


class TestMetadata:
    async def test_metaplex_fallback(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        record = (
            b"\x04" + bytes(new_pubkey()) + bytes(mint)
            + _borsh_string("Doge") + _borsh_string("DOGE") + _borsh_string("https://x/doge.json")
        )
        serve_accounts({mint: mint_account(TOKEN_PROGRAM_ID), pda.metadata_pda(mint): program_account(record)})

        meta = await reader.fetch_metadata(mint)

        assert meta is not None
        assert meta.symbol == "DOGE"
        assert meta.mint == str(mint)

    async def test_token_2022_extension_first(self, reader: StateReader, rpc: AsyncMock, serve_accounts):
        mint = new_pubkey()
        body = (
            bytes(new_pubkey()) + bytes(mint)
            + _borsh_string("Ext") + _borsh_string("EXT") + _borsh_string("ipfs://ext")
        )
        data = bytes(165) + b"\x01" + struct.pack("<HH", 19, len(body)) + body
        serve_accounts({mint: mint_account(TOKEN_2022_PROGRAM_ID, data)})

        meta = await reader.fetch_metadata(mint)

        assert meta is not None
        assert meta.name == "Ext"
        assert rpc.get_account_info.await_count == 1

    async def test_none_when_absent(self, reader: StateReader, serve_accounts):
        mint = new_pubkey()
        serve_accounts({mint: mint_account(TOKEN_PROGRAM_ID)})
        assert await reader.fetch_metadata(mint) is None
