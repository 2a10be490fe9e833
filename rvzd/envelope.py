from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .constants import (
    F_CANDIDATE,
    F_DATA,
    F_REMOTE_ID,
    F_USER_ID,
    K_TYPE,
    T_BYE,
    T_CANDIDATE,
    T_JOIN,
    T_MESSAGE,
)


class MalformedEnvelope(ValueError):
    """Inbound frame could not be decoded into an envelope."""


@dataclass(frozen=True)
class Join:
    user_id: Any = None
    remote_id: Any = None


@dataclass(frozen=True)
class Relay:
    data: Any = None


@dataclass(frozen=True)
class Candidate:
    candidate: Any = None


@dataclass(frozen=True)
class Bye:
    pass


@dataclass(frozen=True)
class Unknown:
    kind: str


Inbound = Union[Join, Relay, Candidate, Bye, Unknown]


def parse_envelope(obj) -> Inbound:
    if not isinstance(obj, dict):
        raise MalformedEnvelope("envelope must be an object")

    kind = obj.get(K_TYPE)
    if not isinstance(kind, str):
        raise MalformedEnvelope("envelope type must be a string")

    if kind == T_JOIN:
        return Join(user_id=obj.get(F_USER_ID), remote_id=obj.get(F_REMOTE_ID))
    if kind == T_MESSAGE:
        return Relay(data=obj.get(F_DATA))
    if kind == T_CANDIDATE:
        return Candidate(candidate=obj.get(F_CANDIDATE))
    if kind == T_BYE:
        return Bye()
    return Unknown(kind=kind)


def make_envelope(msg_type: str, **fields) -> dict:
    env: dict[str, object] = {K_TYPE: msg_type}
    env.update(fields)
    return env
