from __future__ import annotations

import asyncio
import logging
import signal
import ssl
import time
from http import HTTPStatus
from typing import Any

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from .config import HubRuntimeConfig
from .constants import CLOSE_NORMAL, CLOSE_REASON_SHUTDOWN, HEALTH_TEXT
from .messages import CloseRequest, MessageHelper, Outgoing
from .rooms import RoomManager
from .router import MessageRouter
from .session import Session, SessionManager
from .stats import StatsManager
from .transport import WebSocketTransport
from .util import expand_path


class HubService:
    def __init__(self, config: HubRuntimeConfig) -> None:
        self.config = config
        self.log = logging.getLogger("rvzd.hub")

        # All state below is touched only from the event loop thread, and the
        # on_* entry points never await, so each event is applied atomically.
        self.stats_manager = StatsManager(self)
        self.message_helper = MessageHelper(self)
        self.session_manager = SessionManager()
        self.room_manager = RoomManager(self)
        self.router = MessageRouter(self)

        self._server: Server | None = None

    @property
    def port(self) -> int | None:
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    def on_connect(self, transport: Any, *, label: str = "-") -> Session:
        self.stats_manager.inc("connections")
        return self.session_manager.create(transport, label=label)

    def on_frame(self, sess: Session, data: str | bytes) -> None:
        outgoing: Outgoing = []
        try:
            self.router.route_frame(sess, data, outgoing)
        except Exception:
            self.log.exception(
                "Unhandled error routing frame peer=%s user=%r", sess.label, sess.user_id
            )
        self._deliver(outgoing)

    def on_close(self, sess: Session) -> None:
        outgoing: Outgoing = []
        try:
            self.router.disconnect(sess, outgoing)
        except Exception:
            self.log.exception("Unhandled error during disconnect peer=%s", sess.label)
        self.session_manager.forget(sess.transport)
        self._deliver(outgoing)
        self.log.info(
            "Client disconnected peer=%s user=%r connected_s=%.1f",
            sess.label,
            sess.user_id or "Unknown",
            time.monotonic() - sess.connected_at,
        )

    def _deliver(self, outgoing: Outgoing) -> None:
        if self.log.isEnabledFor(logging.DEBUG) and outgoing:
            self.log.debug("Delivering %d item(s)", len(outgoing))

        for sess, item in outgoing:
            try:
                if isinstance(item, CloseRequest):
                    sess.transport.close(item.code, item.reason)
                else:
                    sess.transport.send(item)
            except Exception:
                self.log.debug(
                    "Delivery failed peer=%s user=%r",
                    sess.label,
                    sess.user_id,
                    exc_info=True,
                )

    async def _handler(self, connection: ServerConnection) -> None:
        transport = WebSocketTransport(connection, max_queue=self.config.outbox_max)
        sess = self.on_connect(transport, label=transport.label)
        writer = asyncio.create_task(transport.run_writer())
        try:
            async for data in connection:
                self.on_frame(sess, data)
        except ConnectionClosed as e:
            self.log.info("WebSocket error peer=%s err=%s", sess.label, e)
        finally:
            self.on_close(sess)
            writer.cancel()

    def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Response | None:
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return None

        path = request.path.split("?", 1)[0]
        if path == self.config.health_path:
            return connection.respond(HTTPStatus.OK, HEALTH_TEXT + "\n")
        if self.config.stats_path and path == self.config.stats_path:
            return connection.respond(HTTPStatus.OK, self.stats_manager.format_stats())
        return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")

    def _ssl_context(self) -> ssl.SSLContext | None:
        if not self.config.cert_file:
            return None
        ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        key_file = expand_path(self.config.key_file) if self.config.key_file else None
        ctx.load_cert_chain(expand_path(self.config.cert_file), key_file)
        return ctx

    async def start(self) -> Server:
        cfg = self.config
        self.stats_manager.set_start_time()
        ssl_ctx = self._ssl_context()

        self._server = await serve(
            self._handler,
            cfg.host,
            cfg.port,
            ssl=ssl_ctx,
            process_request=self._process_request,
            ping_interval=cfg.ping_interval_s if cfg.ping_interval_s > 0 else None,
            ping_timeout=cfg.ping_timeout_s if cfg.ping_timeout_s > 0 else None,
            max_size=cfg.max_message_bytes,
        )

        self.log.info(
            "Signaling server running on %s://%s:%s",
            "wss" if ssl_ctx is not None else "ws",
            cfg.host,
            self.port,
        )
        self.log.info(
            "Policy max_message_bytes=%s outbox_max=%s ping_interval_s=%s ping_timeout_s=%s",
            cfg.max_message_bytes,
            cfg.outbox_max,
            cfg.ping_interval_s,
            cfg.ping_timeout_s,
        )
        return self._server

    async def stop(self) -> None:
        self.log.info("Server shutting down")
        sessions = self.session_manager.clear_all()
        self.room_manager.clear_all()

        await asyncio.gather(
            *(
                s.transport.aclose(CLOSE_NORMAL, CLOSE_REASON_SHUTDOWN)
                for s in sessions
            ),
            return_exceptions=True,
        )

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self.log.info("Server shutdown complete")

    async def run_forever(self) -> None:
        if self._server is None:
            await self.start()

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows event loops have no signal handler support.
                pass

        await stop.wait()
        await self.stop()
