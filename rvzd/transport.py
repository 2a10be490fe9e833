from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from websockets.exceptions import ConnectionClosed
from websockets.protocol import State


@dataclass(frozen=True)
class _Close:
    code: int
    reason: str


class WebSocketTransport:
    """
    Fire-and-forget delivery onto one WebSocket connection.

    ``send`` and ``close`` never block: they enqueue, and ``run_writer``
    drains the queue in order, so payloads reach the peer in the order they
    were queued and a close request is applied after the payloads before it.
    """

    def __init__(self, connection: Any, *, max_queue: int = 256) -> None:
        self.connection = connection
        self.log = logging.getLogger("rvzd.transport")
        self._queue: asyncio.Queue = asyncio.Queue()
        self._max_queue = max(1, int(max_queue))
        self._closing = False

    @property
    def label(self) -> str:
        addr = getattr(self.connection, "remote_address", None)
        if isinstance(addr, tuple) and len(addr) >= 2:
            return f"{addr[0]}:{addr[1]}"
        return "-"

    @property
    def is_open(self) -> bool:
        return not self._closing and self.connection.state is State.OPEN

    def send(self, payload: str | bytes) -> None:
        if not self.is_open:
            return
        if self._queue.qsize() >= self._max_queue:
            self.log.warning(
                "Outbox full, dropping payload peer=%s bytes=%s",
                self.label,
                len(payload),
            )
            return
        self._queue.put_nowait(payload)

    def close(self, code: int = 1000, reason: str = "") -> None:
        if self._closing:
            return
        self._closing = True
        self._queue.put_nowait(_Close(code, reason))

    async def aclose(self, code: int = 1000, reason: str = "") -> None:
        """Close now, bypassing anything still queued."""
        self._closing = True
        await self.connection.close(code, reason)

    async def run_writer(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if isinstance(item, _Close):
                    await self.connection.close(item.code, item.reason)
                    return
                await self.connection.send(item)
            except ConnectionClosed:
                return
            except Exception:
                self.log.debug("Send failed peer=%s", self.label, exc_info=True)
