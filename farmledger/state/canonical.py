"""
Deterministic canonical encoding for persisted farm records.

Record dicts are encoded as canonical JSON before hashing so that a store
snapshot has exactly one byte representation.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


CANONICAL_ENCODING_VERSION = 1


def _reject_non_canonical(value: Any) -> None:
    # Floats have no single representation; amounts are always ints.
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, str):
        for ch in value:
            if 0xD800 <= ord(ch) <= 0xDFFF:
                raise TypeError("surrogate code points are not allowed in canonical encoding")
        return
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
            _reject_non_canonical(k)
            _reject_non_canonical(v)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _reject_non_canonical(item)


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for hashing.

    Rules:
    - UTF-8
    - sort_keys=True
    - separators=(',', ':') (no whitespace)
    - allow_nan=False
    - floats rejected
    """
    _reject_non_canonical(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def record_digest(label: str, value: Any, *, version: int = CANONICAL_ENCODING_VERSION) -> str:
    """
    SHA-256 hex of `farmledger:<label>:v<version>`, a NUL byte, then the
    canonical JSON of *value*. Labels are fixed ASCII names chosen by the caller.
    """
    prefix = f"farmledger:{label}:v{version}\x00".encode("ascii")
    return "0x" + hashlib.sha256(prefix + canonical_json_bytes(value)).hexdigest()
