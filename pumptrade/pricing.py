"""Quote math for the bonding curve and the constant-product AMM.

All amounts are raw integer units (lamports / token base units). Divisions
truncate toward zero exactly as the on-chain programs do.
"""

from __future__ import annotations

import math
import random
from decimal import Decimal

from pumptrade.constants import AMM_FEE_BPS, BPS_DENOMINATOR, LAMPORTS_PER_SOL
from pumptrade.models import (
    BondingCurveState,
    PoolReserves,
    PriorityOptions,
    SlippageOptions,
)


# ── Bonding curve ─────────────────────────────────────────────────────


def curve_buy_output(sol_in: int, state: BondingCurveState) -> int:
    """Tokens received for sol_in lamports: Vt - (Vb*Vt)/(Vb+x)."""
    new_virtual_sol = state.virtual_sol_reserves + sol_in
    new_virtual_token = (
        state.virtual_sol_reserves * state.virtual_token_reserves
    ) // new_virtual_sol
    return state.virtual_token_reserves - new_virtual_token


def curve_sell_output(token_in: int, state: BondingCurveState) -> int:
    """Lamports received for token_in tokens: Vb - (Vb*Vt)/(Vt+y)."""
    new_virtual_token = state.virtual_token_reserves + token_in
    new_virtual_sol = (
        state.virtual_sol_reserves * state.virtual_token_reserves
    ) // new_virtual_token
    return state.virtual_sol_reserves - new_virtual_sol


def curve_spot_price(state: BondingCurveState, probe: int) -> Decimal:
    """SOL received for selling `probe` raw token units."""
    return Decimal(curve_sell_output(probe, state)) / Decimal(LAMPORTS_PER_SOL)


# ── AMM ───────────────────────────────────────────────────────────────


def apply_amm_fee(amount: int) -> int:
    return amount * (BPS_DENOMINATOR - AMM_FEE_BPS) // BPS_DENOMINATOR


def amm_buy_output(quote_in: int, reserves: PoolReserves) -> int:
    """Base tokens received for quote_in lamports, fee taken from the input."""
    quote_after_fee = apply_amm_fee(quote_in)
    return (reserves.base_amount * quote_after_fee) // (reserves.quote_amount + quote_after_fee)


def amm_sell_output(base_in: int, reserves: PoolReserves) -> int:
    """Quote lamports received for base_in tokens, fee taken from the input."""
    base_after_fee = apply_amm_fee(base_in)
    return (reserves.quote_amount * base_after_fee) // (reserves.base_amount + base_after_fee)


def amm_spot_price(reserves: PoolReserves) -> Decimal:
    """Quote per base, both scaled by their decimals."""
    base_ui = Decimal(reserves.base_amount).scaleb(-reserves.base_decimals)
    quote_ui = Decimal(reserves.quote_amount).scaleb(-reserves.quote_decimals)
    if base_ui == 0:
        return Decimal(0)
    return quote_ui / base_ui


# ── Slippage / priority policy ────────────────────────────────────────


def calc_slippage_bps(trade_size: int, reserve: int, opts: SlippageOptions) -> int:
    """base + floor(impact * 10000 * factor), clamped max first then min."""
    impact = trade_size / max(reserve, 1)
    slip = opts.base + math.floor(impact * BPS_DENOMINATOR * opts.impact_factor)
    if opts.max is not None:
        slip = min(slip, opts.max)
    if opts.min is not None:
        slip = max(slip, opts.min)
    return slip


def max_cost_with_slippage(amount_in: int, slippage_bps: int) -> int:
    return amount_in * (BPS_DENOMINATOR + slippage_bps) // BPS_DENOMINATOR


def min_output_with_slippage(amount_out: int, slippage_bps: int) -> int:
    """May be zero or negative for extreme slippage; builders clamp to 1."""
    return amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def priority_fee(opts: PriorityOptions, rng: random.Random | None = None) -> int:
    if not opts.enable_random or opts.random_range <= 0:
        return opts.base
    rng = rng or random
    return opts.base + rng.randrange(opts.random_range)
