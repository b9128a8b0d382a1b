from __future__ import annotations

import math

_FNV32_OFFSET = 2166136261
_FNV32_PRIME = 16777619
_MASK32 = 0xFFFFFFFF


def fnv1a_32(text: str) -> int:
    """
    32-bit FNV-1a over the string's UTF-16 code units.

    Matches the byte-wise variant for ASCII input.
    """
    h = _FNV32_OFFSET
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = ((h ^ unit) * _FNV32_PRIME) & _MASK32
    return h


def round_hash(*, seed: str, nonce: int, draw: float) -> str:
    """
    Display fingerprint for a round: "0x" + 8 hex digits.

    Not a commitment scheme. It is not cryptographic and cannot be used to
    verify a crash point after the fact.
    """
    material = f"{seed}|{nonce}|{math.floor(draw * 1e9)}"
    return f"0x{fnv1a_32(material):08x}"
