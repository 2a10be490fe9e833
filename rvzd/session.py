from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from .codec import FORMAT_JSON
from .constants import (
    PHASE_INITIATOR,
    PHASE_JOINED,
    PHASE_LEFT,
    PHASE_UNJOINED,
)
from .util import new_session_id


@dataclass(eq=False)
class Session:
    """Live state of one connected peer.

    Owned by the connection handler; the room registry only keeps a
    reference while the session occupies a room.
    """

    transport: Any
    label: str = "-"
    session_id: str | None = None
    user_id: str | int | None = None
    peer_user_id: str | int | None = None
    room_id: str | None = None
    phase: str = PHASE_UNJOINED
    wire_format: str = FORMAT_JSON
    connected_at: float = field(default_factory=time.monotonic)

    @property
    def is_open(self) -> bool:
        return bool(getattr(self.transport, "is_open", False))

    @property
    def in_room(self) -> bool:
        return self.room_id is not None and self.phase in (
            PHASE_INITIATOR,
            PHASE_JOINED,
        )


class SessionManager:
    """
    Tracks the sessions of all live connections.

    This class is responsible for:
    - Session creation on connect and removal on disconnect
    - Phase transitions (assign on join, release on leave/close)
    - Session statistics
    - Handing out every live session for teardown at shutdown
    """

    def __init__(self) -> None:
        self.log = logging.getLogger("rvzd.session")
        self.sessions: dict[Any, Session] = {}

    def create(self, transport: Any, *, label: str = "-") -> Session:
        sess = Session(transport=transport, label=label)
        self.sessions[transport] = sess
        self.log.info("Session created peer=%s", label)
        return sess

    def assign(
        self,
        sess: Session,
        *,
        user_id: str | int,
        peer_user_id: str | int,
        room_id: str,
        role: str,
    ) -> None:
        sess.session_id = new_session_id()
        sess.user_id = user_id
        sess.peer_user_id = peer_user_id
        sess.room_id = room_id
        self.mark(sess, role)

    def mark(self, sess: Session, phase: str) -> None:
        if sess.phase == phase:
            return
        self.log.debug(
            "Phase peer=%s user=%r %s -> %s", sess.label, sess.user_id, sess.phase, phase
        )
        sess.phase = phase

    def release(self, sess: Session) -> None:
        sess.room_id = None
        self.mark(sess, PHASE_LEFT)

    def forget(self, transport: Any) -> Session | None:
        return self.sessions.pop(transport, None)

    def get_session(self, transport: Any) -> Session | None:
        return self.sessions.get(transport)

    def clear_all(self) -> list[Session]:
        """Clear all sessions and return them for teardown."""
        sessions = list(self.sessions.values())
        self.sessions.clear()
        return sessions

    def get_stats(self) -> dict[str, int]:
        by_phase = {
            PHASE_UNJOINED: 0,
            PHASE_INITIATOR: 0,
            PHASE_JOINED: 0,
            PHASE_LEFT: 0,
        }
        for sess in self.sessions.values():
            by_phase[sess.phase] = by_phase.get(sess.phase, 0) + 1
        return {"total": len(self.sessions), **by_phase}
