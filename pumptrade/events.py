"""Curve-program TradeEvent decoding and the logsSubscribe stream.

Anchor emits events as "Program data: <base64>" log lines. A TradeEvent
payload is: 8-byte discriminator, mint (32), sol_amount (u64),
token_amount (u64), is_buy (u8), user (32), timestamp (i64).
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from collections.abc import Awaitable, Callable
from enum import Enum

import websockets
from loguru import logger
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from websockets.exceptions import WebSocketException

from pumptrade.codec import BinaryReader
from pumptrade.constants import (
    PROGRAM_DATA_LOG_PREFIX,
    PUMP_PROGRAM_ID,
    TRADE_EVENT_DISCRIMINATOR,
)
from pumptrade.models import TradeEvent

TradeHandler = Callable[[TradeEvent], Awaitable[None]]

HANDLER_TIMEOUT_SEC = 30.0
RECONNECT_BASE_DELAY_SEC = 5.0
RECONNECT_MAX_DELAY_SEC = 60.0


def decode_trade_event(payload: bytes, signature: str) -> TradeEvent | None:
    """Decode one event payload; None if it is not a (complete) TradeEvent."""
    if payload[:8] != TRADE_EVENT_DISCRIMINATOR:
        return None
    try:
        r = BinaryReader(payload, 8)
        mint = r.pubkey()
        sol_amount = r.u64()
        token_amount = r.u64()
        is_buy = r.bool()
        user = r.pubkey()
        timestamp = r.i64()
    except ValueError:
        logger.debug(f"[EVENTS] Truncated TradeEvent in {signature[:16]}")
        return None
    return TradeEvent(
        mint=str(mint),
        sol_amount=sol_amount,
        token_amount=token_amount,
        is_buy=is_buy,
        user=str(user),
        timestamp=timestamp,
        signature=signature,
    )


def parse_trade_logs(
    logs: list[str],
    signature: str,
    mint_filter: Pubkey | None = None,
) -> list[TradeEvent]:
    """All TradeEvents in a transaction's logs, optionally restricted to one mint."""
    events: list[TradeEvent] = []
    for line in logs:
        if not line.startswith(PROGRAM_DATA_LOG_PREFIX):
            continue
        try:
            payload = base64.b64decode(line[len(PROGRAM_DATA_LOG_PREFIX):], validate=True)
        except (binascii.Error, ValueError):
            continue
        event = decode_trade_event(payload, signature)
        if event is None:
            continue
        if mint_filter is not None and event.mint != str(mint_filter):
            continue
        events.append(event)
    return events


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ACTIVE = "active"


class TradeSubscription:
    """Handle returned by TradeStreamClient.subscribe()."""

    def __init__(
        self,
        client: TradeStreamClient,
        handler: TradeHandler,
        mint_filter: Pubkey | None,
    ) -> None:
        self._client = client
        self.handler = handler
        self.mint_filter = mint_filter
        self.active = True

    async def unsubscribe(self) -> None:
        """No handler call starts after this returns; already-dispatched ones may finish."""
        if not self.active:
            return
        self.active = False
        await self._client.remove(self)


class TradeStreamClient:
    """WebSocket client for curve-program trade events via Solana logsSubscribe.

    One connection serves every subscription. Auto-reconnects with
    exponential backoff while at least one subscription is active.
    """

    def __init__(self, ws_url: str, *, program_id: Pubkey = PUMP_PROGRAM_ID) -> None:
        self._ws_url = ws_url
        self._program_id = program_id
        self._ws: websockets.WebSocketClientProtocol | None = None
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._message_count = 0
        self._subscription_id: int | None = None
        self._subscriptions: list[TradeSubscription] = []
        self._listen_task: asyncio.Task | None = None
        self._pending_tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def message_count(self) -> int:
        return self._message_count

    def subscribe(self, handler: TradeHandler, mint_filter: Pubkey | None = None) -> TradeSubscription:
        """Register a handler and make sure the stream is running."""
        sub = TradeSubscription(self, handler, mint_filter)
        self._subscriptions.append(sub)
        if self._listen_task is None or self._listen_task.done():
            self._listen_task = asyncio.create_task(self.connect())
        return sub

    async def remove(self, sub: TradeSubscription) -> None:
        sub.active = False
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
        if not self._subscriptions:
            await self.stop()

    async def connect(self) -> None:
        """Run the stream until stop(); every drop, clean or not, backs off and reconnects."""
        self._running = True
        delay = RECONNECT_BASE_DELAY_SEC
        while self._running:
            self._state = ConnectionState.CONNECTING
            try:
                async with websockets.connect(
                    self._ws_url,
                    ping_interval=30,
                    ping_timeout=10,
                    close_timeout=5,
                ) as ws:
                    self._ws = ws
                    self._state = ConnectionState.CONNECTED
                    await self._subscribe()
                    self._state = ConnectionState.ACTIVE
                    delay = RECONNECT_BASE_DELAY_SEC
                    logger.info("[EVENTS] Solana WS connected, logsSubscribe active")
                    await self._listen()
                reason = "closed by server"
            except (WebSocketException, OSError, TimeoutError) as e:
                reason = str(e) or type(e).__name__

            self._state = ConnectionState.DISCONNECTED
            self._ws = None
            self._subscription_id = None
            if not self._running:
                break
            logger.warning(f"[EVENTS] WS dropped ({reason}), reconnecting in {delay:.0f}s")
            await asyncio.sleep(delay)
            delay = min(delay * 2, RECONNECT_MAX_DELAY_SEC)

    async def _subscribe(self) -> None:
        if not self._ws:
            return
        subscribe_msg = json.dumps({
            "jsonrpc": "2.0",
            "id": 1,
            "method": "logsSubscribe",
            "params": [
                {"mentions": [str(self._program_id)]},
                {"commitment": "confirmed"},
            ],
        })
        await self._ws.send(subscribe_msg)
        try:
            response = await asyncio.wait_for(self._ws.recv(), timeout=10.0)
            data = json.loads(response)
            if "result" in data:
                self._subscription_id = data["result"]
                logger.debug(f"[EVENTS] logsSubscribe id={self._subscription_id}")
        except (asyncio.TimeoutError, json.JSONDecodeError) as e:
            logger.warning(f"[EVENTS] Subscribe confirmation failed: {e}")

    async def _listen(self) -> None:
        if not self._ws:
            return

        async for message in self._ws:
            self._message_count += 1
            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                continue

            # {"method": "logsNotification", "params": {"result": {"value": {...}}}}
            params = data.get("params")
            if not params:
                continue
            value = params.get("result", {}).get("value", {})
            signature = value.get("signature")
            logs = value.get("logs", [])
            if not signature or not logs or value.get("err"):
                continue

            self.dispatch(signature, logs)

    def dispatch(self, signature: str, logs: list[str]) -> None:
        """Decode once, then schedule every matching active handler."""
        events = parse_trade_logs(logs, signature)
        if not events:
            return
        for sub in list(self._subscriptions):
            if not sub.active:
                continue
            for event in events:
                if sub.mint_filter is not None and event.mint != str(sub.mint_filter):
                    continue
                task = asyncio.create_task(self._safe_callback(sub, event))
                self._pending_tasks.add(task)
                task.add_done_callback(self._pending_tasks.discard)

    async def _safe_callback(self, sub: TradeSubscription, event: TradeEvent) -> None:
        if not sub.active:
            return
        try:
            await asyncio.wait_for(sub.handler(event), timeout=HANDLER_TIMEOUT_SEC)
        except asyncio.TimeoutError:
            logger.error(f"[EVENTS] Handler timed out for {event.signature[:16]}")
        except Exception as e:
            logger.error(f"[EVENTS] Handler error: {e}")

    async def stop(self) -> None:
        self._running = False
        for sub in self._subscriptions:
            sub.active = False
        self._subscriptions.clear()
        # Detach before awaiting so a subscribe() during shutdown starts a fresh stream
        ws, self._ws = self._ws, None
        task, self._listen_task = self._listen_task, None
        self._state = ConnectionState.DISCONNECTED
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if ws:
            await ws.close()
