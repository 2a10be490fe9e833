from __future__ import annotations

import itertools
import os
import time

_session_seq = itertools.count(1)


def expand_path(p: str) -> str:
    return os.path.expanduser(os.path.expandvars(p))


def now_ms() -> int:
    return int(time.time() * 1000)


def new_session_id() -> str:
    return f"{now_ms()}-{next(_session_seq)}"


def normalize_user_id(value) -> str | int | None:
    """Return a usable user id, or None when it counts as missing.

    Non-empty strings and non-zero integers are ids. They keep their type,
    so the integer 1 and the string "1" are different users.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)) and value:
        return value
    return None
