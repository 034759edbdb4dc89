import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState

from app.realtime.broadcast import RealtimeBroadcastService


class FakeChannel:
    """Stands in for a Starlette WebSocket on the server side."""

    def __init__(self):
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED
        self.sent = []
        self.closed_with = None

    async def send_text(self, text):
        self.sent.append(json.loads(text))

    async def close(self, code=1000):
        self.closed_with = code
        self.application_state = WebSocketState.DISCONNECTED

    def of_type(self, message_type):
        return [m for m in self.sent if m["type"] == message_type]


@pytest.fixture()
def store():
    store = MagicMock()
    store.update_stock_quote = AsyncMock(return_value=True)
    return store


@pytest.fixture()
def service(stock_source, store, monkeypatch):
    service = RealtimeBroadcastService(stock_source, store, poll_interval=30, heartbeat_interval=30)
    monkeypatch.setattr(service.tasks, "start", lambda name=None: None)
    return service


async def _connect(service, *tickers):
    channel = FakeChannel()
    connection = service.register(channel, "127.0.0.1")
    if tickers:
        await service.handle_client_message(
            connection, json.dumps({"type": "subscribe", "tickers": list(tickers)})
        )
    return channel, connection


class TestPriceBroadcast:
    @pytest.mark.asyncio
    async def test_update_goes_only_to_subscribers(self, service, stock_source, store, make_quote):
        stock_source.quotes = {"IDEA": make_quote("IDEA", price="13.40")}
        idea_channel, _ = await _connect(service, "idea")
        sbin_channel, _ = await _connect(service, "SBIN")

        await service.fetch_and_broadcast_updates()

        updates = idea_channel.of_type("price_update")
        assert len(updates) == 1
        assert updates[0]["data"]["ticker"] == "IDEA"
        assert updates[0]["data"]["currentPrice"] == 13.4
        assert set(updates[0]["data"]) == {
            "ticker", "currentPrice", "dayChange", "dayChangePercent",
            "volume", "timestamp", "lastUpdated",
        }
        assert sbin_channel.of_type("price_update") == []
        assert stock_source.fetch_many_calls == [["IDEA", "SBIN"]]
        store.update_stock_quote.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_subscriptions_skips_fetch(self, service, stock_source):
        await _connect(service)

        await service.fetch_and_broadcast_updates()

        assert stock_source.fetch_many_calls == []

    @pytest.mark.asyncio
    async def test_closed_channel_is_skipped(self, service, stock_source, make_quote):
        stock_source.quotes = {"IDEA": make_quote("IDEA")}
        channel, _ = await _connect(service, "IDEA")
        channel.application_state = WebSocketState.DISCONNECTED
        before = len(channel.sent)

        await service.fetch_and_broadcast_updates()

        assert len(channel.sent) == before

    @pytest.mark.asyncio
    async def test_store_failure_does_not_stop_broadcast(self, service, stock_source, store, make_quote):
        stock_source.quotes = {"IDEA": make_quote("IDEA"), "SBIN": make_quote("SBIN", price="760.00")}
        store.update_stock_quote = AsyncMock(side_effect=RuntimeError("db down"))
        channel, _ = await _connect(service, "IDEA", "SBIN")

        await service.fetch_and_broadcast_updates()

        assert len(channel.of_type("price_update")) == 2


class TestClientMessages:
    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe_replies(self, service):
        channel, connection = await _connect(service, "idea", "sbin", 42)

        reply = channel.of_type("subscription_success")[0]
        assert reply["subscribedTickers"] == ["IDEA", "SBIN"]
        assert reply["message"] == "Subscribed to 2 tickers"

        await service.handle_client_message(connection, json.dumps({"type": "unsubscribe", "tickers": ["idea"]}))
        reply = channel.of_type("unsubscription_success")[0]
        assert reply["subscribedTickers"] == ["SBIN"]
        assert reply["message"] == "Unsubscribed from 1 tickers"
        assert connection.subscribed_tickers == {"SBIN"}

    @pytest.mark.asyncio
    async def test_ping_gets_pong(self, service):
        channel, connection = await _connect(service)

        await service.handle_client_message(connection, json.dumps({"type": "ping"}))

        pong = channel.of_type("pong")[0]
        assert isinstance(pong["timestamp"], int)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw, message",
        [
            ("{not json", "Invalid message format"),
            ("[1, 2]", "Invalid message format"),
            (json.dumps({"type": "subscribe", "tickers": "IDEA"}), "tickers must be a list"),
            (json.dumps({"type": "dance"}), "Unknown message type: dance"),
        ],
    )
    async def test_malformed_frames_get_error_and_stay_connected(self, service, raw, message):
        channel, connection = await _connect(service)

        await service.handle_client_message(connection, raw)

        assert channel.of_type("error") == [{"type": "error", "message": message}]
        assert connection.id in service.clients
        assert channel.closed_with is None


class TestHeartbeat:
    @pytest.mark.asyncio
    async def test_silent_client_is_dropped_after_two_checks(self, service):
        channel, connection = await _connect(service)

        await service.perform_heartbeat_check()
        assert connection.is_alive is False
        assert len(channel.of_type("ping")) == 1

        await service.perform_heartbeat_check()
        assert channel.closed_with == 1001
        assert connection.id not in service.clients

    @pytest.mark.asyncio
    async def test_pong_keeps_client_alive(self, service):
        channel, connection = await _connect(service)

        await service.perform_heartbeat_check()
        await service.handle_client_message(connection, json.dumps({"type": "pong"}))
        await service.perform_heartbeat_check()

        assert connection.id in service.clients
        assert channel.closed_with is None
        assert len(channel.of_type("ping")) == 2


def test_connection_stats(service):
    channel = FakeChannel()
    connection = service.register(channel, "10.0.0.5")
    connection.subscribe(["idea"])

    stats = service.get_connection_stats()

    assert stats["total_clients"] == 1
    assert stats["is_running"] is False
    client = stats["clients"][0]
    assert client["id"] == connection.id
    assert client["ip"] == "10.0.0.5"
    assert client["subscribed_tickers"] == ["IDEA"]
    assert client["is_alive"] is True
    assert client["connected_at"]


class TestUpdateLoopLifecycle:
    """First subscribe starts the loop; only stop_realtime_updates stops it"""

    @pytest.fixture()
    async def live_service(self, stock_source, store):
        service = RealtimeBroadcastService(stock_source, store, poll_interval=3600, heartbeat_interval=3600)
        yield service
        await service.stop_realtime_updates()

    @pytest.mark.asyncio
    async def test_loop_runs_until_explicitly_stopped(self, live_service):
        assert live_service.get_connection_stats()["is_running"] is False

        _, connection = await _connect(live_service, "IDEA")
        assert live_service.get_connection_stats()["is_running"] is True
        assert live_service.tasks.is_running("heartbeat") is True

        await live_service.handle_client_message(
            connection, json.dumps({"type": "unsubscribe", "tickers": ["IDEA"]})
        )
        assert live_service.subscribed_tickers() == []
        assert live_service.get_connection_stats()["is_running"] is True

        live_service.unregister(connection.id)
        stats = live_service.get_connection_stats()
        assert stats["total_clients"] == 0
        assert stats["is_running"] is True

        await live_service.stop_realtime_updates()
        assert live_service.get_connection_stats()["is_running"] is False
        assert live_service.tasks.is_running() is False

    @pytest.mark.asyncio
    async def test_repeat_subscribe_keeps_single_loop(self, live_service):
        await _connect(live_service, "IDEA")
        poll_task = live_service.tasks._tasks["price_poll"]

        await _connect(live_service, "SBIN")

        assert live_service.tasks._tasks["price_poll"] is poll_task
