"""Binary layouts for curve/AMM program accounts and instruction arguments.

All integers are little-endian. Anchor accounts start with an 8-byte
discriminator which is skipped, not verified.

Bonding curve (81 bytes):
  0:8    discriminator
  8:48   virtual_token, virtual_sol, real_token, real_sol, total_supply (5 x u64)
  48     complete (u8 bool)
  49:81  creator (Pubkey)

Pool (>= 280 bytes allocated by the AMM program):
  8 bump (u8), 9:11 index (u16), then creator, base_mint, quote_mint,
  lp_mint, pool_base_token_account, pool_quote_token_account (6 x Pubkey),
  lp_supply (u64), coin_creator (Pubkey), is_mayhem_mode (u8)
"""

from __future__ import annotations

import struct

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade.constants import ACCOUNT_DISCRIMINATOR_SIZE
from pumptrade.exceptions import MalformedAccount
from pumptrade.models import (
    AmmGlobalConfig,
    BondingCurveState,
    GlobalConfig,
    PoolKeys,
    TokenMetadata,
)

BONDING_CURVE_SIZE = 81
GLOBAL_CONFIG_SIZE = 145
POOL_MIN_SIZE = 280
AMM_FEE_RECIPIENT_SLOTS = 8
AMM_GLOBAL_CONFIG_SIZE = 8 + 32 + 8 + 8 + 1 + 32 * AMM_FEE_RECIPIENT_SLOTS

# SPL mint layout
MINT_SIZE = 82
TOKEN_ACCOUNT_SIZE = 165
ACCOUNT_TYPE_MINT = 1
EXTENSION_TOKEN_METADATA = 19

U64_MAX = 2**64 - 1


class BinaryReader:
    """Sequential reader over a byte buffer. Short reads raise ValueError."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self.offset = offset

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self._data):
            raise ValueError(
                f"need {size} bytes at offset {self.offset}, buffer is {len(self._data)}"
            )
        chunk = self._data[self.offset:end]
        self.offset = end
        return chunk

    def skip(self, size: int) -> None:
        self._take(size)

    def u8(self) -> int:
        return self._take(1)[0]

    def bool(self) -> bool:
        return self.u8() == 1

    def u16(self) -> int:
        return struct.unpack("<H", self._take(2))[0]

    def u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def i64(self) -> int:
        return struct.unpack("<q", self._take(8))[0]

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self._take(32))

    def string(self) -> str:
        """u32 length-prefixed UTF-8 string, trailing NUL padding stripped."""
        length = self.u32()
        return self._take(length).decode("utf-8", errors="replace").replace("\x00", "")


def encode_u64(value: int) -> bytes:
    if value < 0 or value > U64_MAX:
        raise ValueError(f"u64 out of range: {value}")
    return struct.pack("<Q", value)


def _require_size(address: str, data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise MalformedAccount(address, f"{what} data too short: {len(data)} < {size}")


def decode_global_config(address: Pubkey, data: bytes) -> GlobalConfig:
    _require_size(str(address), data, GLOBAL_CONFIG_SIZE, "global config")
    r = BinaryReader(data, ACCOUNT_DISCRIMINATOR_SIZE)
    return GlobalConfig(
        address=address,
        initialized=r.bool(),
        authority=r.pubkey(),
        fee_recipient=r.pubkey(),
        withdraw_authority=r.pubkey(),
        initial_virtual_token_reserves=r.u64(),
        initial_virtual_sol_reserves=r.u64(),
        initial_real_token_reserves=r.u64(),
        token_total_supply=r.u64(),
        fee_basis_points=r.u64(),
    )


def decode_bonding_curve(address: Pubkey, data: bytes) -> BondingCurveState:
    _require_size(str(address), data, BONDING_CURVE_SIZE, "bonding curve")
    r = BinaryReader(data, ACCOUNT_DISCRIMINATOR_SIZE)
    return BondingCurveState(
        virtual_token_reserves=r.u64(),
        virtual_sol_reserves=r.u64(),
        real_token_reserves=r.u64(),
        real_sol_reserves=r.u64(),
        token_total_supply=r.u64(),
        complete=r.bool(),
        creator=r.pubkey(),
    )


def decode_pool_keys(address: Pubkey, data: bytes) -> PoolKeys:
    _require_size(str(address), data, POOL_MIN_SIZE, "pool")
    r = BinaryReader(data, ACCOUNT_DISCRIMINATOR_SIZE)
    return PoolKeys(
        pool_bump=r.u8(),
        index=r.u16(),
        creator=r.pubkey(),
        base_mint=r.pubkey(),
        quote_mint=r.pubkey(),
        lp_mint=r.pubkey(),
        pool_base_token_account=r.pubkey(),
        pool_quote_token_account=r.pubkey(),
        lp_supply=r.u64(),
        coin_creator=r.pubkey(),
        is_mayhem_mode=r.bool(),
    )


def decode_amm_global_config(address: Pubkey, data: bytes) -> AmmGlobalConfig:
    _require_size(str(address), data, AMM_GLOBAL_CONFIG_SIZE, "AMM global config")
    r = BinaryReader(data, ACCOUNT_DISCRIMINATOR_SIZE)
    admin = r.pubkey()
    r.skip(8)  # lp_fee_basis_points
    r.skip(8)  # protocol_fee_basis_points
    r.skip(1)  # disable_flags
    recipients = tuple(r.pubkey() for _ in range(AMM_FEE_RECIPIENT_SLOTS))
    return AmmGlobalConfig(address=address, admin=admin, protocol_fee_recipients=recipients)


def decode_metadata_account(address: Pubkey, data: bytes) -> TokenMetadata:
    """Metaplex metadata record: 1-byte key, update authority, mint, name, symbol, uri."""
    try:
        r = BinaryReader(data, 1)
        update_authority = r.pubkey()
        mint = r.pubkey()
        name = r.string()
        symbol = r.string()
        uri = r.string()
    except ValueError as e:
        raise MalformedAccount(str(address), f"metadata: {e}") from e
    return TokenMetadata(
        name=name,
        symbol=symbol,
        uri=uri,
        mint=str(mint),
        update_authority=str(update_authority),
    )


def decode_token2022_metadata(address: Pubkey, data: bytes) -> TokenMetadata | None:
    """Find the TokenMetadata TLV extension in a Token-2022 mint.

    Returns None when the mint carries no metadata extension.
    """
    if len(data) <= TOKEN_ACCOUNT_SIZE or data[TOKEN_ACCOUNT_SIZE] != ACCOUNT_TYPE_MINT:
        return None
    try:
        r = BinaryReader(data, TOKEN_ACCOUNT_SIZE + 1)
        while r.offset + 4 <= len(data):
            ext_type = r.u16()
            length = r.u16()
            if ext_type == 0:
                return None
            if ext_type != EXTENSION_TOKEN_METADATA:
                r.skip(length)
                continue
            update_authority = r.pubkey()
            mint = r.pubkey()
            return TokenMetadata(
                name=r.string(),
                symbol=r.string(),
                uri=r.string(),
                mint=str(mint),
                update_authority=str(update_authority),
            )
    except ValueError as e:
        raise MalformedAccount(str(address), f"token-2022 metadata: {e}") from e
    return None


def is_mint_of_program(data: bytes, owner: Pubkey, program_id: Pubkey) -> bool:
    """Whether an account interprets as a mint under the given token program.

    Mirrors spl-token unpackMint: owner must match, base layout is 82 bytes,
    and an extended Token-2022 mint carries the Mint account-type byte at 165.
    """
    if owner != program_id or len(data) < MINT_SIZE:
        return False
    if len(data) == MINT_SIZE:
        return True
    return len(data) > TOKEN_ACCOUNT_SIZE and data[TOKEN_ACCOUNT_SIZE] == ACCOUNT_TYPE_MINT
