"""
ringweave - Seeded random stream
Mulberry32: a 32-bit state mixer producing a reproducible float stream in [0, 1).
"""

_MASK32 = 0xFFFFFFFF


class SeededRandom:
    """Deterministic float stream; the same seed always yields the same sequence."""

    def __init__(self, seed: int = 0):
        self.reseed(seed)

    def reseed(self, seed: int) -> None:
        """Restart the stream from `seed`."""
        self.seed = int(seed)
        self._state = self.seed & _MASK32

    def random(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0

    __call__ = random

    def index(self, length: int) -> int:
        """Uniform index into a sequence of `length` items (one draw)."""
        return int(self.random() * length)
