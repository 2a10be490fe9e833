from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .codec import decode, sniff_format
from .constants import (
    CLOSE_POLICY_VIOLATION,
    CLOSE_REASON_SELF,
    ERR_MISSING_PARAMS,
    ERR_ROOM_FULL,
    ERR_SELF_CONNECTION,
    F_CANDIDATE,
    F_DATA,
    F_FROM,
    F_ID,
    F_ROOM,
    F_USER_ID,
    K_TYPE,
    PHASE_INITIATOR,
    PHASE_LEFT,
    PHASE_UNJOINED,
    T_BYE,
    T_CANDIDATE,
    T_CREATED,
    T_JOINED,
    T_MESSAGE,
    T_READY,
)
from .envelope import (
    Bye,
    Candidate,
    Join,
    MalformedEnvelope,
    Relay,
    Unknown,
    make_envelope,
    parse_envelope,
)
from .rooms import RoomFull, room_id_for
from .util import normalize_user_id

if TYPE_CHECKING:
    from .messages import Outgoing
    from .service import HubService
    from .session import Session


class MessageRouter:
    """
    Per-session state machine and message router.

    This class is responsible for:
    - Decoding inbound frames into envelopes
    - Dispatching by envelope kind and checking the session phase
    - Driving room joins and leaves on the room registry
    - Computing which sessions receive which envelopes

    Nothing here awaits: handlers only append to ``outgoing`` and the hub
    flushes it once the handler returns.
    """

    def __init__(self, hub: HubService) -> None:
        self.hub = hub
        self.log = logging.getLogger("rvzd.router")

    def route_frame(
        self, sess: Session, data: str | bytes, outgoing: Outgoing
    ) -> None:
        """Main entry point for one inbound frame."""
        stats = self.hub.stats_manager
        stats.inc("frames_in")
        stats.inc("bytes_in", len(data))

        fmt = sniff_format(data)
        try:
            env = parse_envelope(decode(data, fmt))
        except (MalformedEnvelope, ValueError, TypeError) as e:
            # cbor2 and json decode errors both derive from ValueError.
            stats.inc("frames_bad")
            self.log.debug(
                "Bad frame peer=%s bytes=%s err=%s", sess.label, len(data), e
            )
            return

        sess.wire_format = fmt

        if isinstance(env, Join):
            self._handle_join(sess, env, outgoing)
        elif isinstance(env, Relay):
            self._handle_message(sess, env, outgoing)
        elif isinstance(env, Candidate):
            self._handle_candidate(sess, env, outgoing)
        elif isinstance(env, Bye):
            self._handle_bye(sess, outgoing)
        elif isinstance(env, Unknown):
            self.log.info(
                "Unknown message type peer=%s user=%r type=%r",
                sess.label,
                sess.user_id,
                env.kind,
            )

    def _handle_join(self, sess: Session, env: Join, outgoing: Outgoing) -> None:
        """Handle join: validate ids, enter the room, notify both sides."""
        helper = self.hub.message_helper

        if sess.phase != PHASE_UNJOINED:
            self.log.info(
                "Join ignored peer=%s user=%r phase=%s",
                sess.label,
                sess.user_id,
                sess.phase,
            )
            return

        user_id = normalize_user_id(env.user_id)
        peer_user_id = normalize_user_id(env.remote_id)
        if user_id is None or peer_user_id is None:
            self.log.info(
                "Join attempt with missing parameters peer=%s userId=%r remoteId=%r",
                sess.label,
                env.user_id,
                env.remote_id,
            )
            helper.emit_error(outgoing, sess, ERR_MISSING_PARAMS)
            return

        if user_id == peer_user_id:
            self.log.info(
                "Join rejected, self connection peer=%s user=%r", sess.label, user_id
            )
            helper.emit_error(outgoing, sess, ERR_SELF_CONNECTION)
            helper.queue_close(
                outgoing, sess, code=CLOSE_POLICY_VIOLATION, reason=CLOSE_REASON_SELF
            )
            self.hub.session_manager.release(sess)
            return

        room_id = room_id_for(str(user_id), str(peer_user_id))
        try:
            role, members = self.hub.room_manager.join(
                room_id, sess, user_id, outgoing
            )
        except RoomFull:
            self.log.warning(
                "Join rejected, room full peer=%s user=%r room=%s",
                sess.label,
                user_id,
                room_id,
            )
            helper.emit_error(outgoing, sess, ERR_ROOM_FULL)
            return

        self.hub.session_manager.assign(
            sess,
            user_id=user_id,
            peer_user_id=peer_user_id,
            room_id=room_id,
            role=role,
        )
        self.hub.stats_manager.inc("joins")

        if role == PHASE_INITIATOR:
            self.log.info(
                "JOIN user=%r room=%s role=initiator peer=%s",
                user_id,
                room_id,
                sess.label,
            )
            helper.queue_env(outgoing, sess, make_envelope(T_CREATED, **{F_ROOM: room_id}))
        else:
            self.log.info(
                "JOIN user=%r room=%s role=joined peer=%s",
                user_id,
                room_id,
                sess.label,
            )
            helper.queue_env(outgoing, sess, make_envelope(T_JOINED, **{F_ROOM: room_id}))
            helper.broadcast(
                outgoing,
                members,
                make_envelope(T_READY, **{F_ROOM: room_id}),
                exclude=sess,
            )

        helper.broadcast(outgoing, members, helper.room_info(room_id, members))

    def _handle_message(
        self, sess: Session, env: Relay, outgoing: Outgoing
    ) -> None:
        if not sess.in_room:
            self.log.debug("Message received but no room assigned peer=%s", sess.label)
            return

        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "MSG user=%r room=%s data_type=%s",
                sess.user_id,
                sess.room_id,
                type(env.data).__name__,
            )
        self._relay(
            sess,
            make_envelope(T_MESSAGE, **{F_DATA: env.data, F_FROM: sess.user_id}),
            outgoing,
        )

    def _handle_candidate(
        self, sess: Session, env: Candidate, outgoing: Outgoing
    ) -> None:
        if not sess.in_room:
            self.log.debug(
                "ICE candidate received but no room assigned peer=%s", sess.label
            )
            return

        self.log.debug("ICE candidate user=%r room=%s", sess.user_id, sess.room_id)
        data = {K_TYPE: T_CANDIDATE, F_CANDIDATE: env.candidate}
        self._relay(
            sess,
            make_envelope(T_MESSAGE, **{F_DATA: data, F_FROM: sess.user_id}),
            outgoing,
        )

    def _handle_bye(self, sess: Session, outgoing: Outgoing) -> None:
        if not sess.in_room:
            self.log.debug("Bye received but no room assigned peer=%s", sess.label)
            return

        self.log.info("User leaving user=%r room=%s", sess.user_id, sess.room_id)
        self.disconnect(sess, outgoing)

    def _relay(self, sess: Session, env: dict, outgoing: Outgoing) -> None:
        members = self.hub.room_manager.get_room_members(sess.room_id)
        sent = self.hub.message_helper.broadcast(outgoing, members, env, exclude=sess)
        if sent:
            self.hub.stats_manager.inc("relays", sent)

    def disconnect(self, sess: Session, outgoing: Outgoing) -> None:
        """
        Leave the current room, if any, and tell whoever remains.

        Runs on transport close and on ``bye``. A session without a room is
        only released, so running this twice is harmless.
        """
        room_id = sess.room_id
        if room_id is None or sess.phase == PHASE_LEFT:
            self.hub.session_manager.release(sess)
            return

        helper = self.hub.message_helper
        rooms = self.hub.room_manager

        others = [m for m in rooms.get_room_members(room_id) if m is not sess]
        helper.broadcast(
            outgoing,
            others,
            make_envelope(T_BYE, **{F_ID: sess.session_id, F_USER_ID: sess.user_id}),
        )

        remaining = rooms.leave(room_id, sess)
        self.hub.session_manager.release(sess)
        self.hub.stats_manager.inc("leaves")
        self.log.info(
            "LEAVE user=%r room=%s remaining=%s peer=%s",
            sess.user_id,
            room_id,
            len(remaining),
            sess.label,
        )

        if remaining:
            helper.broadcast(outgoing, remaining, helper.room_info(room_id, remaining))
