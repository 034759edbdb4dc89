"""
Realtime Broadcast Service

WebSocket feed of live stock prices. Clients subscribe to tickers; every poll
interval the union of subscriptions is fetched once and each quote is pushed
to the clients that asked for it. An application-level ping/pong heartbeat
drops clients that stop answering.

Wire messages keep camelCase field names for browser clients.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from app.config import settings
from app.domain.models import StockQuote
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.types import StockQuoteSource
from app.realtime.connection import SubscriberConnection
from app.realtime.recurring import RecurringTasks
from app.utils.time import epoch_millis, now_ist, to_iso

logger = logging.getLogger(__name__)

PRICE_POLL = "price_poll"
HEARTBEAT = "heartbeat"

WELCOME_MESSAGE = "Connected to Stock Info India real-time data feed"


def _number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def price_update_message(quote: StockQuote) -> Dict[str, Any]:
    return {
        "type": "price_update",
        "data": {
            "ticker": quote.ticker.upper(),
            "currentPrice": _number(quote.current_price),
            "dayChange": _number(quote.day_change),
            "dayChangePercent": _number(quote.day_change_percent),
            "volume": quote.volume,
            "timestamp": to_iso(now_ist()),
            "lastUpdated": to_iso(quote.last_updated),
        },
    }


class RealtimeBroadcastService:
    def __init__(
        self,
        source: StockQuoteSource,
        store: Optional[MarketDataStore],
        poll_interval: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
        tasks: Optional[RecurringTasks] = None,
    ):
        self.source = source
        self.store = store
        self.clients: Dict[str, SubscriberConnection] = {}
        self.tasks = tasks or RecurringTasks()
        self.tasks.add(
            PRICE_POLL,
            poll_interval if poll_interval is not None else settings.REALTIME_POLL_SECONDS,
            self.fetch_and_broadcast_updates,
        )
        self.tasks.add(
            HEARTBEAT,
            heartbeat_interval if heartbeat_interval is not None else settings.REALTIME_HEARTBEAT_SECONDS,
            self.perform_heartbeat_check,
        )

    @property
    def is_running(self) -> bool:
        return self.tasks.is_running(PRICE_POLL)

    def initialize(self, app: FastAPI, path: Optional[str] = None) -> None:
        path = path or settings.WS_PATH
        app.add_api_websocket_route(path, self.websocket_endpoint)
        logger.info("🔌 WebSocket server initialized on %s path", path)

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def websocket_endpoint(self, websocket: WebSocket) -> None:
        await websocket.accept()
        ip = websocket.client.host if websocket.client else None
        connection = self.register(websocket, ip)
        await connection.send({
            "type": "connection",
            "status": "connected",
            "clientId": connection.id,
            "message": WELCOME_MESSAGE,
        })

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None and frame.get("bytes") is not None:
                    raw = frame["bytes"].decode("utf-8", errors="replace")
                await self.handle_client_message(connection, raw or "")
        except WebSocketDisconnect:
            pass
        finally:
            self.unregister(connection.id)

    def register(self, websocket: Any, ip: Optional[str] = None) -> SubscriberConnection:
        connection = SubscriberConnection(websocket, ip=ip)
        self.clients[connection.id] = connection
        logger.info("WebSocket client connected: %s from %s", connection.id, ip)
        return connection

    def unregister(self, client_id: str) -> None:
        if self.clients.pop(client_id, None) is not None:
            logger.info("WebSocket client disconnected: %s", client_id)

    async def handle_client_message(self, connection: SubscriberConnection, raw: str) -> None:
        connection.touch()

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Invalid WebSocket message from %s", connection.id)
            await self._send_error(connection, "Invalid message format")
            return
        if not isinstance(data, dict):
            await self._send_error(connection, "Invalid message format")
            return

        message_type = data.get("type")
        if message_type in ("subscribe", "unsubscribe"):
            tickers = data.get("tickers", [])
            if not isinstance(tickers, list):
                await self._send_error(connection, "tickers must be a list")
                return
            if message_type == "subscribe":
                await self.subscribe_to_tickers(connection, tickers)
            else:
                await self.unsubscribe_from_tickers(connection, tickers)
        elif message_type == "ping":
            await connection.send({"type": "pong", "timestamp": epoch_millis()})
        elif message_type == "pong":
            return
        else:
            await self._send_error(connection, f"Unknown message type: {message_type}")

    async def subscribe_to_tickers(self, connection: SubscriberConnection, tickers: List[Any]) -> None:
        added = connection.subscribe(tickers)
        logger.info(
            "Client %s subscribed to: %s", connection.id, ", ".join(sorted(connection.subscribed_tickers))
        )
        await connection.send({
            "type": "subscription_success",
            "subscribedTickers": sorted(connection.subscribed_tickers),
            "message": f"Subscribed to {len(added)} tickers",
        })
        self.start_realtime_updates()

    async def unsubscribe_from_tickers(self, connection: SubscriberConnection, tickers: List[Any]) -> None:
        removed = connection.unsubscribe(tickers)
        await connection.send({
            "type": "unsubscription_success",
            "subscribedTickers": sorted(connection.subscribed_tickers),
            "message": f"Unsubscribed from {len(removed)} tickers",
        })

    async def _send_error(self, connection: SubscriberConnection, message: str) -> None:
        await connection.send({"type": "error", "message": message})

    # ------------------------------------------------------------------
    # Recurring work
    # ------------------------------------------------------------------

    def start_realtime_updates(self) -> None:
        if self.tasks.is_running(PRICE_POLL) and self.tasks.is_running(HEARTBEAT):
            return
        logger.info("▶️  Starting real-time stock price updates")
        self.tasks.start()

    async def stop_realtime_updates(self) -> None:
        await self.tasks.stop()
        logger.info("⏹️  Stopped real-time stock price updates")

    def subscribed_tickers(self) -> List[str]:
        union = set()
        for connection in self.clients.values():
            union.update(connection.subscribed_tickers)
        return sorted(union)

    async def fetch_and_broadcast_updates(self) -> None:
        tickers = self.subscribed_tickers()
        if not tickers:
            logger.debug("No subscribed tickers, skipping price update")
            return

        logger.debug("Fetching updates for %d tickers", len(tickers))
        result = await self.source.fetch_many(tickers)

        for quote in result.fetched:
            await self.broadcast_stock_update(quote)
            if self.store is not None:
                try:
                    await self.store.update_stock_quote(quote)
                except Exception as exc:
                    logger.error("Error updating %s in database: %s", quote.ticker, exc)

    async def broadcast_stock_update(self, quote: StockQuote) -> int:
        message = price_update_message(quote)
        delivered = 0
        for connection in list(self.clients.values()):
            if connection.is_subscribed(quote.ticker) and await connection.send(message):
                delivered += 1
        return delivered

    async def perform_heartbeat_check(self) -> None:
        for connection in list(self.clients.values()):
            if not connection.is_alive:
                logger.info("Terminating inactive client: %s", connection.id)
                await connection.terminate(code=1001)
                self.unregister(connection.id)
                continue
            await connection.ping()

    def get_connection_stats(self) -> Dict[str, Any]:
        return {
            "total_clients": len(self.clients),
            "is_running": self.is_running,
            "clients": [connection.to_stats() for connection in self.clients.values()],
        }
