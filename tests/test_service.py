import asyncio
import json

from websockets.asyncio.client import connect as ws_connect

from rvzd.config import HubRuntimeConfig
from rvzd.constants import HEALTH_TEXT
from rvzd.service import HubService


def _config() -> HubRuntimeConfig:
    return HubRuntimeConfig(host="127.0.0.1", port=0, ping_interval_s=0, ping_timeout_s=0)


async def _recv(ws) -> dict:
    return json.loads(await asyncio.wait_for(ws.recv(), timeout=5))


async def _http_get(port: int, path: str) -> bytes:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())
    await writer.drain()
    data = await asyncio.wait_for(reader.read(), timeout=5)
    writer.close()
    return data


def test_signaling_round_trip_over_websockets() -> None:
    async def scenario() -> None:
        svc = HubService(_config())
        await svc.start()
        uri = f"ws://127.0.0.1:{svc.port}/"
        try:
            async with ws_connect(uri) as alice, ws_connect(uri) as bob:
                await alice.send(json.dumps({"type": "join", "userId": "alice", "remoteId": "bob"}))
                assert await _recv(alice) == {"type": "created", "room": "room_alice_bob"}
                assert (await _recv(alice))["userCount"] == 1

                await bob.send(json.dumps({"type": "join", "userId": "bob", "remoteId": "alice"}))
                assert await _recv(bob) == {"type": "joined", "room": "room_alice_bob"}
                assert (await _recv(bob))["userCount"] == 2
                assert await _recv(alice) == {"type": "ready", "room": "room_alice_bob"}
                assert (await _recv(alice))["userCount"] == 2

                await alice.send(json.dumps({"type": "message", "data": {"type": "offer", "sdp": "v=0"}}))
                assert await _recv(bob) == {
                    "type": "message",
                    "data": {"type": "offer", "sdp": "v=0"},
                    "from": "alice",
                }

                await bob.close()
                bye = await _recv(alice)
                assert bye["type"] == "bye"
                assert bye["userId"] == "bob"
                info = await _recv(alice)
                assert info["userCount"] == 1
                assert [u["userId"] for u in info["users"]] == ["alice"]
        finally:
            await svc.stop()

        assert svc.room_manager.rooms == {}

    asyncio.run(scenario())


def test_health_and_stats_endpoints() -> None:
    async def scenario() -> None:
        svc = HubService(_config())
        await svc.start()
        try:
            health = await _http_get(svc.port, "/")
            assert health.startswith(b"HTTP/1.1 200")
            assert HEALTH_TEXT.encode() in health

            stats = await _http_get(svc.port, "/stats")
            assert stats.startswith(b"HTTP/1.1 200")
            assert b"rooms=0" in stats

            missing = await _http_get(svc.port, "/nope")
            assert missing.startswith(b"HTTP/1.1 404")
        finally:
            await svc.stop()

    asyncio.run(scenario())


def test_self_connection_closes_socket() -> None:
    async def scenario() -> None:
        svc = HubService(_config())
        await svc.start()
        try:
            async with ws_connect(f"ws://127.0.0.1:{svc.port}/") as ws:
                await ws.send(json.dumps({"type": "join", "userId": "alice", "remoteId": "alice"}))
                err = await _recv(ws)
                assert err == {"type": "error", "message": "User cannot connect to themselves"}
                await asyncio.wait_for(ws.wait_closed(), timeout=5)
                assert ws.close_code == 1008
        finally:
            await svc.stop()

    asyncio.run(scenario())
