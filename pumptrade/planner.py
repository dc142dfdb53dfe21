"""Order sizing: split a requested total into bounded sub-orders."""

from __future__ import annotations

from pumptrade.models import OrderPlan


def split_by_max(total: int, max_chunk: int) -> list[int]:
    """Cut off min(remaining, max_chunk) until nothing remains."""
    if max_chunk <= 0:
        raise ValueError(f"max_chunk must be positive, got {max_chunk}")
    chunks: list[int] = []
    remaining = total
    while remaining > 0:
        chunk = min(remaining, max_chunk)
        chunks.append(chunk)
        remaining -= chunk
    return chunks


def split_into_n(total: int, n: int) -> list[int]:
    """n parts of floor(total/n); the last part absorbs the remainder."""
    if n <= 0:
        raise ValueError(f"part count must be positive, got {n}")
    part = total // n
    return [part] * (n - 1) + [total - part * (n - 1)]


def plan_buy(total_sol_in: int, max_sol_per_tx: int) -> OrderPlan:
    """Spend-bounded buy chunks (bounds lamports in, not tokens out)."""
    return OrderPlan(tuple(split_by_max(total_sol_in, max_sol_per_tx)))


def plan_sell(total_token_in: int, estimated_sol_out: int, max_sol_per_tx: int) -> OrderPlan:
    """Split token input so each chunk's estimated proceeds fit under max_sol_per_tx.

    The estimate is a single quote of the whole amount taken before any
    chunk executes; it is not refreshed as reserves move between chunks.
    """
    if max_sol_per_tx <= 0:
        raise ValueError(f"max_sol_per_tx must be positive, got {max_sol_per_tx}")
    if estimated_sol_out <= max_sol_per_tx:
        return OrderPlan((total_token_in,))
    parts = -(-estimated_sol_out // max_sol_per_tx)
    return OrderPlan(tuple(split_into_n(total_token_in, parts)))
