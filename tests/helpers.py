import json

import cbor2


class FakeTransport:
    def __init__(self, name: str = "peer") -> None:
        self.name = name
        self.sent: list = []
        self.closed: tuple[int, str] | None = None

    @property
    def is_open(self) -> bool:
        return self.closed is None

    def send(self, payload) -> None:
        if self.closed is None:
            self.sent.append(payload)

    def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed is None:
            self.closed = (code, reason)

    def envelopes(self) -> list[dict]:
        out = []
        for payload in self.sent:
            if isinstance(payload, bytes):
                out.append(cbor2.loads(payload))
            else:
                out.append(json.loads(payload))
        return out

    def of_type(self, t: str) -> list[dict]:
        return [e for e in self.envelopes() if e.get("type") == t]

    def clear(self) -> None:
        self.sent.clear()


def send(hub, sess, **env) -> None:
    hub.on_frame(sess, json.dumps(env))


def join(hub, sess, user_id, remote_id) -> None:
    send(hub, sess, type="join", userId=user_id, remoteId=remote_id)
