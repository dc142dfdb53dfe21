"""Data models for decoded on-chain state, trade options and trade results."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade.constants import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID

if TYPE_CHECKING:
    from config.settings import Settings


# ── RPC results ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class AccountInfo:
    """Raw account as returned by getAccountInfo (base64 data already decoded)."""

    data: bytes
    owner: Pubkey
    lamports: int
    executable: bool = False


@dataclass(frozen=True)
class TokenAmount:
    amount: int
    decimals: int
    ui_amount: float | None = None


@dataclass(frozen=True)
class TokenBalance:
    mint: str
    amount: int
    decimals: int
    ui_amount: float


# ── Decoded program accounts ──────────────────────────────────────────


@dataclass(frozen=True)
class GlobalConfig:
    """Curve program singleton config (seed "global")."""

    address: Pubkey
    initialized: bool
    authority: Pubkey
    fee_recipient: Pubkey
    withdraw_authority: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int


@dataclass(frozen=True)
class BondingCurveState:
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool
    creator: Pubkey


@dataclass(frozen=True)
class BondingCurveInfo:
    """Snapshot of a token's curve. Re-read before every quote or trade."""

    address: Pubkey
    mint: Pubkey
    state: BondingCurveState


@dataclass(frozen=True)
class PoolKeys:
    pool_bump: int
    index: int
    creator: Pubkey
    base_mint: Pubkey
    quote_mint: Pubkey
    lp_mint: Pubkey
    pool_base_token_account: Pubkey
    pool_quote_token_account: Pubkey
    lp_supply: int
    coin_creator: Pubkey
    is_mayhem_mode: bool


@dataclass(frozen=True)
class AmmGlobalConfig:
    address: Pubkey
    admin: Pubkey
    protocol_fee_recipients: tuple[Pubkey, ...]

    @property
    def active_fee_recipient(self) -> Pubkey:
        """First slot is the active recipient; zeroed later slots are unused."""
        return self.protocol_fee_recipients[0]


@dataclass(frozen=True)
class PoolInfo:
    pool: Pubkey
    pool_authority: Pubkey
    keys: PoolKeys
    global_config: AmmGlobalConfig


@dataclass(frozen=True)
class PoolReserves:
    base_amount: int
    quote_amount: int
    base_decimals: int
    quote_decimals: int


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    uri: str
    mint: str = ""
    update_authority: str = ""


class TokenProgram(Enum):
    """Which SPL token program owns a mint."""

    TOKEN_2022 = "TOKEN_2022_PROGRAM_ID"
    TOKEN = "TOKEN_PROGRAM_ID"

    @property
    def program_id(self) -> Pubkey:
        if self is TokenProgram.TOKEN_2022:
            return TOKEN_2022_PROGRAM_ID
        return TOKEN_PROGRAM_ID


class TradeMode(Enum):
    BONDING = "bonding"
    AMM = "amm"


@dataclass(frozen=True)
class PriceQuote:
    """Spot price in SOL per whole token."""

    price: Decimal
    completed: bool


# ── Trade options ─────────────────────────────────────────────────────


@dataclass
class SlippageOptions:
    base: int
    min: int | None = None
    max: int | None = None
    impact_factor: float = 1.0


@dataclass
class PriorityOptions:
    base: int
    enable_random: bool = False
    random_range: int = 0


@dataclass
class TradeOptions:
    """Per-call sizing, slippage and priority-fee policy.

    max_sol_per_tx bounds the lamports spent per buy sub-order and the
    estimated lamports received per sell sub-order.
    """

    max_sol_per_tx: int
    slippage: SlippageOptions
    priority: PriorityOptions

    @classmethod
    def from_settings(cls, settings: Settings) -> TradeOptions:
        return cls(
            max_sol_per_tx=settings.max_sol_per_tx_lamports,
            slippage=SlippageOptions(
                base=settings.slippage_base_bps,
                min=settings.slippage_min_bps,
                max=settings.slippage_max_bps,
                impact_factor=settings.slippage_impact_factor,
            ),
            priority=PriorityOptions(
                base=settings.priority_fee_micro_lamports,
                enable_random=settings.priority_fee_random,
                random_range=settings.priority_fee_random_range,
            ),
        )


# ── Plans and results ─────────────────────────────────────────────────


@dataclass(frozen=True)
class OrderPlan:
    """Sub-order amounts in submission order. Sums to the requested total."""

    amounts: tuple[int, ...]

    @property
    def total(self) -> int:
        return sum(self.amounts)

    def __len__(self) -> int:
        return len(self.amounts)


@dataclass(frozen=True)
class PendingTransaction:
    signature: str
    last_valid_block_height: int
    index: int


@dataclass(frozen=True)
class FailedTransaction:
    index: int
    error: str


@dataclass
class TradeOutcome:
    pending: list[PendingTransaction] = field(default_factory=list)
    failed: list[FailedTransaction] = field(default_factory=list)

    @property
    def all_submitted(self) -> bool:
        return not self.failed

    @property
    def signatures(self) -> list[str]:
        return [p.signature for p in self.pending]


# ── Streamed events ───────────────────────────────────────────────────


class TradeEvent(BaseModel):
    """Decoded curve-program TradeEvent from a "Program data:" log line."""

    mint: str
    sol_amount: int
    token_amount: int
    is_buy: bool
    user: str
    timestamp: int
    signature: str

    model_config = {"extra": "ignore"}
