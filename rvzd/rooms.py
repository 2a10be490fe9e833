"""Room registry for the signaling hub.

A room pairs exactly two peers under an id derived from their declared user
ids. A room exists exactly while it has members: it is created by the first
join and removed by the leave that empties it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .constants import (
    CLOSE_NORMAL,
    CLOSE_REASON_REPLACED,
    ERR_REPLACED,
    PHASE_INITIATOR,
    PHASE_JOINED,
    ROOM_CAPACITY,
    ROOM_PREFIX,
)

if TYPE_CHECKING:
    from .messages import Outgoing
    from .service import HubService
    from .session import Session


class RoomFull(Exception):
    """Two other users already occupy the room."""

    def __init__(self, room_id: str) -> None:
        super().__init__(f"room {room_id} is full")
        self.room_id = room_id


def room_id_for(a: str, b: str) -> str:
    lo, hi = sorted((a, b))
    return f"{ROOM_PREFIX}{lo}_{hi}"


@dataclass(eq=False)
class Room:
    room_id: str
    members: list[Session] = field(default_factory=list)
    initiator: str | int | None = None
    created_at: float = field(default_factory=time.monotonic)

    def find_user(self, user_id: str | int) -> Session | None:
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None


class RoomManager:
    """Owns the room id -> Room mapping.

    Every method runs to completion without yielding to the event loop, so a
    join or leave is never observed half-done by another handler.
    """

    def __init__(self, hub: HubService) -> None:
        self.hub = hub
        self.log = logging.getLogger("rvzd.rooms")
        self.rooms: dict[str, Room] = {}

    def get_room(self, room_id: str) -> Room | None:
        return self.rooms.get(room_id)

    def get_room_members(self, room_id: str) -> list[Session]:
        """Snapshot of the members of a room (empty if it does not exist)."""
        room = self.rooms.get(room_id)
        return list(room.members) if room is not None else []

    def join(
        self,
        room_id: str,
        sess: Session,
        user_id: str | int,
        outgoing: Outgoing,
    ) -> tuple[str, list[Session]]:
        """
        Insert ``sess`` into ``room_id`` as ``user_id``.

        A member already present under the same user id is evicted first: it
        gets an error notice, its transport is closed and it is released.

        Returns:
            (role, members snapshot) tuple
        Raises:
            RoomFull if two other users are still present after eviction.
        """
        room = self.rooms.get(room_id)
        created = room is None
        if room is None:
            room = Room(room_id=room_id)
            self.rooms[room_id] = room

        stale = room.find_user(user_id)
        if stale is not None and stale is not sess:
            self._evict(room, stale, outgoing)

        if len(room.members) >= ROOM_CAPACITY:
            raise RoomFull(room_id)

        if not room.members:
            role = PHASE_INITIATOR
            room.initiator = user_id
        else:
            role = PHASE_JOINED
        room.members.append(sess)

        if created:
            self.hub.stats_manager.inc("rooms_created")
            self.log.info("Room created room=%s", room_id)

        return role, list(room.members)

    def leave(self, room_id: str, sess: Session) -> list[Session]:
        """Remove ``sess``; delete the room if it became empty."""
        room = self.rooms.get(room_id)
        if room is None:
            return []

        room.members = [m for m in room.members if m is not sess]
        if not room.members:
            self.rooms.pop(room_id, None)
            self.hub.stats_manager.inc("rooms_deleted")
            self.log.info(
                "Deleting empty room room=%s lifetime_s=%.1f",
                room_id,
                time.monotonic() - room.created_at,
            )
            return []

        return list(room.members)

    def _evict(self, room: Room, stale: Session, outgoing: Outgoing) -> None:
        self.log.info(
            "Replacing old connection user=%r room=%s peer=%s",
            stale.user_id,
            room.room_id,
            stale.label,
        )
        helper = self.hub.message_helper
        helper.emit_error(outgoing, stale, ERR_REPLACED)
        helper.queue_close(
            outgoing, stale, code=CLOSE_NORMAL, reason=CLOSE_REASON_REPLACED
        )
        room.members = [m for m in room.members if m is not stale]
        self.hub.session_manager.release(stale)
        self.hub.stats_manager.inc("evictions")

    def clear_all(self) -> None:
        self.rooms.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            "rooms_total": len(self.rooms),
            "memberships": sum(len(r.members) for r in self.rooms.values()),
            "full_rooms": sum(
                1 for r in self.rooms.values() if len(r.members) >= ROOM_CAPACITY
            ),
        }
