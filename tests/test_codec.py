"""Value codec: JSON text encoding, decode failures surface as DecodeError."""

from __future__ import annotations

import math

import pytest

from tablestore.codec import canonical, decode, encode
from tablestore.core.errors import DecodeError, EncodeError, StorageEngineError


@pytest.mark.parametrize(
    "value",
    [0, -7, 3.25, "text", "", True, False, None, [1, "a", None], {"a": {"b": [1, 2]}, "c": False}, "üñí"],
)
def test_decode_inverts_encode(value):
    assert decode(encode(value)) == value


def test_encode_is_compact_text():
    assert encode({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
    assert encode(42) == "42"
    assert encode("42") == '"42"'


def test_types_survive_round_trip():
    assert decode(encode("42")) == "42"
    assert isinstance(decode(encode(True)), bool)
    assert isinstance(decode(encode(1.5)), float)


def test_encode_rejects_non_json():
    with pytest.raises(EncodeError):
        encode({1, 2})
    with pytest.raises(EncodeError):
        encode(math.nan)
    # EncodeError is also a TypeError for callers that catch the builtin.
    with pytest.raises(TypeError):
        encode(object())


def test_decode_malformed_raises_decode_error():
    with pytest.raises(DecodeError) as exc_info:
        decode("{not json", key="k", table="main")
    err = exc_info.value
    assert err.text == "{not json"
    assert err.key == "k"
    assert "main.k" in str(err)
    assert isinstance(err, StorageEngineError)


def test_decode_bytes_and_non_text():
    assert decode(b'{"a":1}') == {"a": 1}
    with pytest.raises(DecodeError):
        decode(None)
    with pytest.raises(DecodeError):
        decode(12)


def test_canonical_sorts_keys():
    assert canonical({"b": 1, "a": 2}) == canonical({"a": 2, "b": 1})
