import hashlib

import pytest

from farmledger.state.canonical import canonical_json_bytes, record_digest


def test_digest_is_prefixed_sha256_of_canonical_json() -> None:
    value = {"b": 1, "a": [2, "x"]}
    expected = hashlib.sha256(b"farmledger:rec:v1\x00" + b'{"a":[2,"x"],"b":1}').hexdigest()
    assert record_digest("rec", value) == "0x" + expected


def test_digest_ignores_key_order() -> None:
    assert record_digest("rec", {"a": 1, "b": 2}) == record_digest("rec", {"b": 2, "a": 1})


def test_digest_separates_labels_and_versions() -> None:
    value = {"a": 1}
    assert record_digest("rec", value) != record_digest("other", value)
    assert record_digest("rec", value, version=1) != record_digest("rec", value, version=2)


def test_floats_rejected() -> None:
    with pytest.raises(TypeError):
        canonical_json_bytes({"amount": 1.0})
    with pytest.raises(TypeError):
        record_digest("rec", [0.5])
