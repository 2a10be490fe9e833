import cbor2
import pytest

from rvzd.codec import FORMAT_CBOR, FORMAT_JSON, decode, encode, sniff_format
from rvzd.envelope import make_envelope


def test_text_frames_are_json() -> None:
    env = make_envelope("created", room="room_alice_bob")
    data = encode(env)
    assert isinstance(data, str)
    assert sniff_format(data) == FORMAT_JSON
    assert decode(data) == env


def test_binary_frames_are_cbor() -> None:
    env = make_envelope("message", data={"sdp": "v=0"}, **{"from": "alice"})
    data = encode(env, FORMAT_CBOR)
    assert isinstance(data, bytes)
    assert sniff_format(data) == FORMAT_CBOR
    assert cbor2.loads(data) == env
    assert decode(data) == env


def test_binary_frame_holding_json_text() -> None:
    data = b'  {"type": "bye"}'
    assert sniff_format(data) == FORMAT_JSON
    assert decode(data) == {"type": "bye"}


def test_decode_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        decode("{not json")
    with pytest.raises(ValueError):
        decode(b"\xa1")


def test_json_encoding_carries_cbor_only_values() -> None:
    env = {
        "type": "message",
        "data": {
            "blob": b"\x01\x02",
            "tagged": cbor2.CBORTag(4000, "x"),
            "missing": cbor2.undefined,
            "nested": [bytearray(b"\xff"), (1, 2)],
            7: "int key",
        },
    }

    assert decode(encode(env)) == {
        "type": "message",
        "data": {
            "blob": "AQI=",
            "tagged": "x",
            "missing": None,
            "nested": ["/w==", [1, 2]],
            "7": "int key",
        },
    }


def test_cbor_encoding_keeps_bytes() -> None:
    env = {"type": "message", "data": b"\x01\x02"}
    assert decode(encode(env, FORMAT_CBOR)) == env
