"""
One subscribed WebSocket client.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
from typing import Any, Dict, Iterable, List, Optional, Set

from starlette.websockets import WebSocketState

from app.utils.time import epoch_millis, now_ist, to_iso

logger = logging.getLogger(__name__)

_CLIENT_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_client_id() -> str:
    suffix = "".join(secrets.choice(_CLIENT_ID_ALPHABET) for _ in range(9))
    return f"client_{epoch_millis()}_{suffix}"


class SubscriberConnection:
    def __init__(self, websocket: Any, client_id: Optional[str] = None, ip: Optional[str] = None):
        self.websocket = websocket
        self.id = client_id or generate_client_id()
        self.ip = ip
        self.connected_at = now_ist()
        self.subscribed_tickers: Set[str] = set()
        self.is_alive = True

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.application_state == WebSocketState.CONNECTED
            and getattr(self.websocket, "client_state", WebSocketState.CONNECTED) == WebSocketState.CONNECTED
        )

    def touch(self) -> None:
        self.is_alive = True

    def subscribe(self, tickers: Iterable[Any]) -> List[str]:
        added = [t.strip().upper() for t in tickers if isinstance(t, str) and t.strip()]
        self.subscribed_tickers.update(added)
        return added

    def unsubscribe(self, tickers: Iterable[Any]) -> List[str]:
        removed = [t.strip().upper() for t in tickers if isinstance(t, str) and t.strip()]
        self.subscribed_tickers.difference_update(removed)
        return removed

    def is_subscribed(self, ticker: str) -> bool:
        return ticker.upper() in self.subscribed_tickers

    async def send(self, message: Dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        try:
            await self.websocket.send_text(json.dumps(message, default=str))
        except Exception as exc:
            logger.error("Error sending message to client %s: %s", self.id, exc)
            return False
        return True

    async def ping(self) -> None:
        """Mark unanswered and ask the client for a pong."""
        self.is_alive = False
        await self.send({"type": "ping", "timestamp": epoch_millis()})

    async def terminate(self, code: int = 1001) -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close(code=code)
        except Exception as exc:
            logger.debug("Close failed for client %s: %s", self.id, exc)

    def to_stats(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ip": self.ip,
            "connected_at": to_iso(self.connected_at),
            "subscribed_tickers": sorted(self.subscribed_tickers),
            "is_alive": self.is_alive,
        }
