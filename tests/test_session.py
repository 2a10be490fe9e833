from helpers import FakeTransport
from rvzd.constants import PHASE_INITIATOR, PHASE_JOINED, PHASE_LEFT, PHASE_UNJOINED
from rvzd.session import SessionManager


def test_create_starts_unjoined() -> None:
    mgr = SessionManager()
    t = FakeTransport()
    sess = mgr.create(t, label="10.0.0.1:5000")

    assert sess.phase == PHASE_UNJOINED
    assert sess.room_id is None
    assert sess.session_id is None
    assert sess.is_open
    assert mgr.get_session(t) is sess


def test_assign_stamps_fresh_id_each_join() -> None:
    mgr = SessionManager()
    sess = mgr.create(FakeTransport())

    mgr.assign(sess, user_id="alice", peer_user_id="bob", room_id="room_alice_bob", role=PHASE_INITIATOR)
    first = sess.session_id
    assert sess.in_room
    assert sess.phase == PHASE_INITIATOR

    mgr.assign(sess, user_id="alice", peer_user_id="bob", room_id="room_alice_bob", role=PHASE_JOINED)
    assert sess.session_id != first


def test_release_clears_room() -> None:
    mgr = SessionManager()
    sess = mgr.create(FakeTransport())
    mgr.assign(sess, user_id="alice", peer_user_id="bob", room_id="room_alice_bob", role=PHASE_JOINED)

    mgr.release(sess)
    mgr.release(sess)

    assert sess.phase == PHASE_LEFT
    assert sess.room_id is None
    assert not sess.in_room


def test_stats_and_clear_all() -> None:
    mgr = SessionManager()
    a = mgr.create(FakeTransport("a"))
    mgr.create(FakeTransport("b"))
    mgr.assign(a, user_id="alice", peer_user_id="bob", room_id="room_alice_bob", role=PHASE_INITIATOR)

    stats = mgr.get_stats()
    assert stats["total"] == 2
    assert stats[PHASE_INITIATOR] == 1
    assert stats[PHASE_UNJOINED] == 1

    assert len(mgr.clear_all()) == 2
    assert mgr.get_stats()["total"] == 0


def test_is_open_follows_transport() -> None:
    mgr = SessionManager()
    t = FakeTransport()
    sess = mgr.create(t)
    t.close(1000, "bye")
    assert not sess.is_open
