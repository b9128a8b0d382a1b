from __future__ import annotations

import secrets

import structlog

log = structlog.get_logger()

_MASK32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0

# xmur3 seed mixer
_XMUR3_INIT = 1779033703
_XMUR3_MUL = 3432918353
_XMUR3_FINAL_1 = 2246822507
_XMUR3_FINAL_2 = 3266489909

# mulberry32 step
_MULBERRY32_INC = 0x6D2B79F5


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def _utf16_units(text: str) -> list[int]:
    """
    Seeds are mixed as UTF-16 code units so a seed string hashes the same
    way a browser client would hash it.
    """
    units: list[int] = []
    for ch in text:
        cp = ord(ch)
        if cp > 0xFFFF:
            cp -= 0x10000
            units.append(0xD800 + (cp >> 10))
            units.append(0xDC00 + (cp & 0x3FF))
        else:
            units.append(cp)
    return units


def hash_seed(seed: str) -> int:
    """
    Fold a seed string into a 32-bit state (xmur3).

    Order dependent: every code unit is xor-ed in, multiplied by an odd
    constant and rotated left by 13 before the final avalanche.
    """
    units = _utf16_units(seed)
    h = (_XMUR3_INIT ^ len(units)) & _MASK32
    for unit in units:
        h = _imul(h ^ unit, _XMUR3_MUL)
        h = ((h << 13) | (h >> 19)) & _MASK32

    h = _imul(h ^ (h >> 16), _XMUR3_FINAL_1)
    h = _imul(h ^ (h >> 13), _XMUR3_FINAL_2)
    h ^= h >> 16
    return h & _MASK32


def generate_seed() -> str:
    return secrets.token_hex(8)


class SeededRNG:
    """
    Deterministic float generator (xmur3 seeding + mulberry32 stepping).

    Two instances built from the same seed produce bit-identical draw
    sequences. The 32-bit state lives on the instance only.
    """

    def __init__(self, seed: str) -> None:
        if not seed:
            raise ValueError("seed must be a non-empty string")
        self._seed = seed
        self._state = hash_seed(seed)

    @classmethod
    def from_optional_seed(cls, seed: str | None) -> tuple["SeededRNG", bool]:
        """
        Build an RNG, generating a random seed when none is given.

        Returns (rng, generated). A generated seed cannot be replayed unless
        the caller records rng.seed.
        """
        if seed:
            return cls(seed), False

        generated = generate_seed()
        log.warning("rng.seed_generated", seed=generated, reproducible=False)
        return cls(generated), True

    @property
    def seed(self) -> str:
        return self._seed

    def draw(self) -> float:
        a = (self._state + _MULBERRY32_INC) & _MASK32
        self._state = a

        t = _imul(a ^ (a >> 15), 1 | a)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32
