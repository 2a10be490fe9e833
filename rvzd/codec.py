from __future__ import annotations

import base64
import json
from datetime import date, datetime

import cbor2
from cbor2 import CBORSimpleValue, CBORTag, undefined

FORMAT_JSON = "json"
FORMAT_CBOR = "cbor"


def sniff_format(data: str | bytes) -> str:
    if isinstance(data, str):
        return FORMAT_JSON
    # A CBOR envelope is a map, so it never starts with "{" (0x7b is a
    # text-string header); binary frames carrying JSON text do.
    if bytes(data).lstrip()[:1] == b"{":
        return FORMAT_JSON
    return FORMAT_CBOR


def json_safe(obj):
    """Map values decoded from CBOR onto what JSON can carry.

    Byte strings become standard base64 text, tags collapse to their
    content, ``undefined`` becomes null, simple values their number and
    dates ISO 8601 text. Map keys that are not strings become their JSON
    text. Anything else unknown is passed through ``str``.
    """
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return obj
    if obj is undefined:
        return None
    if isinstance(obj, dict):
        return {_json_key(k): json_safe(v) for k, v in obj.items()}
    if isinstance(obj, CBORSimpleValue):
        return obj.value
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [json_safe(v) for v in obj]
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, CBORTag):
        return json_safe(obj.value)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def _json_key(key) -> str:
    if isinstance(key, str):
        return key
    safe = json_safe(key)
    if isinstance(safe, str):
        return safe
    return json.dumps(safe, separators=(",", ":"))


def encode(obj, fmt: str = FORMAT_JSON) -> str | bytes:
    if fmt == FORMAT_CBOR:
        return cbor2.dumps(obj)
    return json.dumps(json_safe(obj), separators=(",", ":"))


def decode(data: str | bytes, fmt: str | None = None):
    fmt = fmt or sniff_format(data)
    if fmt == FORMAT_CBOR:
        return cbor2.loads(data)
    return json.loads(data)
