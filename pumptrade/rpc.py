"""Async Solana JSON-RPC client over httpx.

Only the methods the trade engine needs. Transport failures (timeouts,
connect errors, 429, 5xx) are retried with a short backoff; JSON-RPC error
payloads and non-JSON bodies are raised immediately as RpcError.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Any

import httpx
from loguru import logger
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade.exceptions import RpcError, SubmissionFailed
from pumptrade.models import AccountInfo, TokenAmount, TokenBalance
from pumptrade.utils.rate_limiter import RateLimiter

MAX_RETRIES = 2
RETRY_DELAYS = [0.5, 1.5]


class SolanaRpcClient:
    """JSON-RPC 2.0 client for account, balance, blockhash and transaction calls."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 15.0,
        max_rps: float = 10.0,
        commitment: str = "confirmed",
    ) -> None:
        if not rpc_url:
            raise ValueError("RPC URL is empty")
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._http = httpx.AsyncClient(timeout=timeout)
        self._rate_limiter = RateLimiter(max_rps)
        self._request_id = 0

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def _call(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._http.post(self._rpc_url, json=payload)

                if resp.status_code == 429 or resp.status_code >= 500:
                    if attempt < MAX_RETRIES:
                        logger.debug(f"[RPC] {method} HTTP {resp.status_code}, retry in {delay}s")
                        await asyncio.sleep(delay)
                        continue
                    raise RpcError(method, f"HTTP {resp.status_code}", resp.status_code)

                if resp.status_code != 200:
                    raise RpcError(method, f"HTTP {resp.status_code}", resp.status_code)

                try:
                    data = resp.json()
                except ValueError as e:
                    raise RpcError(method, "invalid JSON response") from e
                if not isinstance(data, dict):
                    raise RpcError(method, "invalid JSON response")
                if "error" in data:
                    error = data["error"]
                    if isinstance(error, dict):
                        raise RpcError(method, error.get("message", str(error)), error.get("code"))
                    raise RpcError(method, str(error))
                return data.get("result")

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[RPC] {method} {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise RpcError(method, f"{type(e).__name__}: {e}") from e

        raise RpcError(method, "retries exhausted")

    # ─── Accounts ─────────────────────────────────────────────────────

    async def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        result = await self._call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._commitment}],
        )
        value = (result or {}).get("value")
        if not value:
            return None
        return AccountInfo(
            data=base64.b64decode(value["data"][0]),
            owner=Pubkey.from_string(value["owner"]),
            lamports=int(value.get("lamports", 0)),
            executable=bool(value.get("executable", False)),
        )

    async def get_balance(self, address: Pubkey) -> int:
        """Lamport balance."""
        result = await self._call("getBalance", [str(address), {"commitment": self._commitment}])
        return int((result or {}).get("value", 0))

    async def get_token_account_balance(self, address: Pubkey) -> TokenAmount:
        result = await self._call(
            "getTokenAccountBalance", [str(address), {"commitment": self._commitment}]
        )
        value = (result or {}).get("value")
        if not value:
            raise RpcError("getTokenAccountBalance", f"no balance for {address}")
        return TokenAmount(
            amount=int(value["amount"]),
            decimals=int(value["decimals"]),
            ui_amount=value.get("uiAmount"),
        )

    async def get_parsed_token_accounts_by_owner(
        self,
        owner: Pubkey,
        *,
        mint: Pubkey | None = None,
        program_id: Pubkey | None = None,
    ) -> list[TokenBalance]:
        """Token accounts of an owner filtered by mint or by token program."""
        if (mint is None) == (program_id is None):
            raise ValueError("exactly one of mint or program_id is required")
        account_filter = {"mint": str(mint)} if mint is not None else {"programId": str(program_id)}
        result = await self._call(
            "getTokenAccountsByOwner",
            [
                str(owner),
                account_filter,
                {"encoding": "jsonParsed", "commitment": self._commitment},
            ],
        )

        balances: list[TokenBalance] = []
        for item in (result or {}).get("value", []):
            parsed = item["account"]["data"].get("parsed", {})
            if parsed.get("type") != "account":
                continue
            info = parsed["info"]
            token_amount = info["tokenAmount"]
            balances.append(
                TokenBalance(
                    mint=info["mint"],
                    amount=int(token_amount.get("amount", "0")),
                    decimals=int(token_amount.get("decimals", 0)),
                    ui_amount=float(token_amount.get("uiAmount") or 0.0),
                )
            )
        return balances

    # ─── Blocks ───────────────────────────────────────────────────────

    async def get_latest_blockhash(self, commitment: str = "finalized") -> tuple[Hash, int]:
        """Returns (blockhash, last_valid_block_height)."""
        result = await self._call("getLatestBlockhash", [{"commitment": commitment}])
        value = result["value"]
        return Hash.from_string(value["blockhash"]), int(value["lastValidBlockHeight"])

    async def get_block_height(self, commitment: str = "finalized") -> int:
        return int(await self._call("getBlockHeight", [{"commitment": commitment}]))

    # ─── Transactions ─────────────────────────────────────────────────

    async def get_transaction(self, signature: str, commitment: str = "confirmed") -> dict | None:
        return await self._call(
            "getTransaction",
            [
                signature,
                {
                    "commitment": commitment,
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    async def send_raw_transaction(
        self,
        raw_tx: bytes,
        *,
        skip_preflight: bool = False,
        max_retries: int = 2,
    ) -> str:
        """Submit a signed transaction. Raises SubmissionFailed on rejection."""
        tx_b64 = base64.b64encode(raw_tx).decode("ascii")
        try:
            result = await self._call(
                "sendTransaction",
                [
                    tx_b64,
                    {
                        "encoding": "base64",
                        "skipPreflight": skip_preflight,
                        "preflightCommitment": self._commitment,
                        "maxRetries": max_retries,
                    },
                ],
            )
        except RpcError as e:
            raise SubmissionFailed(e.message) from e
        if not result:
            raise SubmissionFailed("sendTransaction returned no signature")
        return str(result)

    async def close(self) -> None:
        await self._http.aclose()
