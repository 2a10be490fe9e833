import asyncio

from websockets.exceptions import ConnectionClosedError
from websockets.protocol import State

from rvzd.transport import WebSocketTransport


class FakeConnection:
    def __init__(self, *, fail_after: int | None = None) -> None:
        self.state = State.OPEN
        self.remote_address = ("203.0.113.5", 40000)
        self.events: list = []
        self.fail_after = fail_after

    async def send(self, payload) -> None:
        if self.fail_after is not None and len(self.events) >= self.fail_after:
            raise ConnectionClosedError(None, None)
        self.events.append(("send", payload))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.events.append(("close", code, reason))
        self.state = State.CLOSED


def _run(coro):
    return asyncio.run(asyncio.wait_for(coro, timeout=5))


def test_payloads_drain_in_order_then_close() -> None:
    async def scenario():
        conn = FakeConnection()
        t = WebSocketTransport(conn)
        t.send("one")
        t.send(b"two")
        t.close(1000, "replaced")
        t.send("after close")
        assert not t.is_open
        await t.run_writer()
        return conn.events

    assert _run(scenario()) == [
        ("send", "one"),
        ("send", b"two"),
        ("close", 1000, "replaced"),
    ]


def test_full_outbox_drops_new_payloads() -> None:
    async def scenario():
        conn = FakeConnection()
        t = WebSocketTransport(conn, max_queue=2)
        for text in ("a", "b", "c", "d"):
            t.send(text)
        # close requests bypass the payload limit
        t.close(1000, "")
        await t.run_writer()
        return conn.events

    assert _run(scenario()) == [("send", "a"), ("send", "b"), ("close", 1000, "")]


def test_second_close_is_ignored() -> None:
    async def scenario():
        conn = FakeConnection()
        t = WebSocketTransport(conn)
        t.close(1008, "first")
        t.close(1000, "second")
        await t.run_writer()
        return conn.events

    assert _run(scenario()) == [("close", 1008, "first")]


def test_send_on_closed_connection_is_dropped() -> None:
    async def scenario():
        conn = FakeConnection()
        conn.state = State.CLOSED
        t = WebSocketTransport(conn)
        t.send("x")
        return t._queue.qsize()

    assert _run(scenario()) == 0


def test_writer_stops_when_peer_goes_away() -> None:
    async def scenario():
        conn = FakeConnection(fail_after=1)
        t = WebSocketTransport(conn)
        t.send("delivered")
        t.send("lost")
        t.send("never tried")
        await t.run_writer()
        return conn.events, t._queue.qsize()

    events, left = _run(scenario())
    assert events == [("send", "delivered")]
    assert left == 1


def test_label_uses_remote_address() -> None:
    async def scenario():
        return WebSocketTransport(FakeConnection()).label

    assert _run(scenario()) == "203.0.113.5:40000"
