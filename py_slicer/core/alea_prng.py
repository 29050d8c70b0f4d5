"""
Seeded Alea PRNG (Johannes Baagøe's algorithm).

All randomness in the slicer flows through an explicit AleaPRNG instance so
that a given seed string always produces the same tessellation.
"""

import uuid
from typing import Optional, Union

Seed = Union[str, int, float]

_MASH_INITIAL = 0xEFC8249D
_TWO_POW_32 = 0x100000000
_TWO_POW_MINUS_32 = 2.3283064365386963e-10


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class _Mash:
    """Alea's string hash; keeps its state between calls."""

    def __init__(self):
        self.n = _MASH_INITIAL

    def __call__(self, data) -> float:
        n = self.n
        for char in str(data):
            n += ord(char)
            h = 0.02519603282416938 * n
            n = _uint32(h)
            h -= n
            h *= n
            n = _uint32(h)
            h -= n
            n += h * _TWO_POW_32
        self.n = n
        return _uint32(n) * _TWO_POW_MINUS_32


class AleaPRNG:
    """Deterministic [0, 1) generator seeded from a string or number."""

    def __init__(self, seed: Seed):
        self.seed = str(seed)
        self.call_count = 0

        mash = _Mash()
        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        self.s0 = self._fold(self.s0 - mash(self.seed))
        self.s1 = self._fold(self.s1 - mash(self.seed))
        self.s2 = self._fold(self.s2 - mash(self.seed))

    @staticmethod
    def _fold(value: float) -> float:
        return value + 1 if value < 0 else value

    @classmethod
    def from_seed(cls, seed: Optional[Seed] = None) -> "AleaPRNG":
        """Create a generator; a fresh random seed is drawn when none is given."""
        if seed is None:
            seed = str(uuid.uuid4())[:8]
        return cls(seed)

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * _TWO_POW_MINUS_32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2
