"""Statistics tracking and reporting for the signaling hub."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .service import HubService


class StatsManager:
    """
    Lifetime counters for the hub.

    Tracks:
    - Frames and bytes in/out
    - Malformed frames
    - Joins, leaves and evictions
    - Rooms created and deleted
    - Relayed messages
    - Error envelopes sent
    """

    def __init__(self, hub: HubService) -> None:
        self.hub = hub

        self.started_wall_time: float | None = None
        self.started_monotonic: float | None = None

        self._counters: dict[str, int] = {
            "bytes_in": 0,
            "bytes_out": 0,
            "frames_in": 0,
            "frames_bad": 0,
            "connections": 0,
            "joins": 0,
            "leaves": 0,
            "evictions": 0,
            "rooms_created": 0,
            "rooms_deleted": 0,
            "relays": 0,
            "errors_sent": 0,
        }

    def set_start_time(self) -> None:
        self.started_wall_time = time.time()
        self.started_monotonic = time.monotonic()

    def inc(self, key: str, delta: int = 1) -> None:
        self._counters[key] = int(self._counters.get(key, 0)) + int(delta)

    def get(self, key: str) -> int:
        return self._counters.get(key, 0)

    def format_stats(self) -> str:
        """Format current statistics as a human-readable string."""
        from . import __version__

        started_mono = self.started_monotonic
        uptime_s = (time.monotonic() - started_mono) if started_mono is not None else 0.0

        session_stats = self.hub.session_manager.get_stats()
        room_stats = self.hub.room_manager.get_stats()
        c = dict(self._counters)
        cfg = self.hub.config

        lines: list[str] = []
        lines.append(f"rvzd {__version__} stats")
        lines.append(f"uptime_s={uptime_s:.1f}")
        lines.append(
            "clients_total={total} unjoined={unjoined} initiator={initiator} "
            "joined={joined} left={left}".format(**session_stats)
        )
        lines.append(
            "rooms={rooms_total} memberships={memberships} full={full_rooms}".format(
                **room_stats
            )
        )
        lines.append(
            f"limits: max_message_bytes={cfg.max_message_bytes} "
            f"outbox_max={cfg.outbox_max} "
            f"ping_interval_s={cfg.ping_interval_s} "
            f"ping_timeout_s={cfg.ping_timeout_s}"
        )
        lines.append(
            "io: connections={} frames_in={} frames_bad={} bytes_in={} bytes_out={}".format(
                c["connections"],
                c["frames_in"],
                c["frames_bad"],
                c["bytes_in"],
                c["bytes_out"],
            )
        )
        lines.append(
            "events: joins={} leaves={} evictions={} relays={} errors_sent={}".format(
                c["joins"],
                c["leaves"],
                c["evictions"],
                c["relays"],
                c["errors_sent"],
            )
        )
        lines.append(
            "rooms: created={} deleted={}".format(c["rooms_created"], c["rooms_deleted"])
        )

        return "\n".join(lines) + "\n"
