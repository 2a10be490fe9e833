"""Outgoing queue helpers for the signaling hub."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from .codec import encode
from .constants import (
    CLOSE_NORMAL,
    F_ID,
    F_MESSAGE,
    F_ROOM,
    F_USER_COUNT,
    F_USER_ID,
    F_USERS,
    T_ERROR,
    T_ROOM_INFO,
)
from .envelope import make_envelope

if TYPE_CHECKING:
    from .service import HubService
    from .session import Session


@dataclass(frozen=True)
class CloseRequest:
    code: int = CLOSE_NORMAL
    reason: str = ""


Outgoing = list[tuple["Session", Union[str, bytes, CloseRequest]]]


class MessageHelper:
    """
    Helper methods for filling an outgoing list.

    Envelopes are encoded at queue time in the recipient's wire format, so
    the flush step only moves payloads onto transports.
    """

    def __init__(self, hub: HubService) -> None:
        self.hub = hub

    def queue_payload(
        self, outgoing: Outgoing, sess: Session, payload: str | bytes
    ) -> None:
        self.hub.stats_manager.inc("bytes_out", len(payload))
        outgoing.append((sess, payload))

    def queue_env(self, outgoing: Outgoing, sess: Session, env: dict) -> None:
        self.queue_payload(outgoing, sess, encode(env, sess.wire_format))

    def queue_close(
        self, outgoing: Outgoing, sess: Session, *, code: int, reason: str
    ) -> None:
        outgoing.append((sess, CloseRequest(code=code, reason=reason)))

    def emit_error(self, outgoing: Outgoing, sess: Session, text: str) -> None:
        self.hub.stats_manager.inc("errors_sent")
        self.queue_env(outgoing, sess, make_envelope(T_ERROR, **{F_MESSAGE: text}))

    def broadcast(
        self,
        outgoing: Outgoing,
        members: list[Session],
        env: dict,
        *,
        exclude: Session | None = None,
    ) -> int:
        """Queue ``env`` for every open member except ``exclude``.

        ``members`` must already be a snapshot. Returns the recipient count.
        """
        sent = 0
        for member in members:
            if member is exclude or not member.is_open:
                continue
            self.queue_env(outgoing, member, env)
            sent += 1
        return sent

    def room_info(self, room_id: str, members: list[Session]) -> dict:
        users = [{F_ID: m.session_id, F_USER_ID: m.user_id} for m in members]
        return make_envelope(
            T_ROOM_INFO,
            **{F_ROOM: room_id, F_USERS: users, F_USER_COUNT: len(users)},
        )
