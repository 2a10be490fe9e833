from rvzd.util import new_session_id, normalize_user_id


def test_normalize_user_id() -> None:
    assert normalize_user_id("alice") == "alice"
    assert normalize_user_id(42) == 42
    assert normalize_user_id("0") == "0"

    for missing in (None, "", 0, False, True, 1.5, [], {"id": 1}):
        assert normalize_user_id(missing) is None


def test_session_ids_are_unique() -> None:
    ids = {new_session_id() for _ in range(100)}
    assert len(ids) == 100
