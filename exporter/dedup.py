from __future__ import annotations

import math
from typing import Protocol, Set

from exporter.hash_utils import sha256_text


class Deduplicator(Protocol):
    def add(self, text: str) -> bool:
        """Record `text`; True if it had not been seen before in this run."""
        ...


class ExactDeduplicator:
    """
    Keeps every emitted text in memory. Precise, but grows with the number
    of unique texts in the index.
    """

    def __init__(self) -> None:
        self._seen: Set[str] = set()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, text: str) -> bool:
        return text in self._seen

    def add(self, text: str) -> bool:
        if text in self._seen:
            return False
        self._seen.add(text)
        return True


class BloomDeduplicator:
    """
    Fixed-memory Bloom filter over the emitted texts.

    A duplicate is never emitted twice, but once roughly `capacity` texts have
    been added a unique text is wrongly treated as seen (and dropped) with
    probability close to `error_rate`. Past capacity that rate keeps rising.
    """

    def __init__(self, capacity: int = 1_000_000, error_rate: float = 0.001):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        if not 0.0 < error_rate < 1.0:
            raise ValueError("error_rate must be between 0 and 1")
        self.capacity = capacity
        self.error_rate = error_rate
        bits = -capacity * math.log(error_rate) / math.log(2) ** 2
        self.num_bits = max(8, math.ceil(bits))
        self.num_hashes = max(1, round(self.num_bits / capacity * math.log(2)))
        self._bits = bytearray((self.num_bits + 7) // 8)
        self.count = 0

    def _positions(self, text: str):
        # double hashing: h1 + i*h2 over one SHA-256 digest
        digest = sha256_text(text)
        h1 = int(digest[:16], 16)
        h2 = int(digest[16:32], 16) | 1
        for i in range(self.num_hashes):
            yield (h1 + i * h2) % self.num_bits

    def __contains__(self, text: str) -> bool:
        return all(self._bits[p >> 3] & (1 << (p & 7)) for p in self._positions(text))

    def add(self, text: str) -> bool:
        new = False
        for p in self._positions(text):
            mask = 1 << (p & 7)
            if not self._bits[p >> 3] & mask:
                self._bits[p >> 3] |= mask
                new = True
        if new:
            self.count += 1
        return new


def build_deduplicator(
    mode: str = "exact", capacity: int = 1_000_000, error_rate: float = 0.001
) -> Deduplicator:
    if mode == "exact":
        return ExactDeduplicator()
    if mode == "bloom":
        return BloomDeduplicator(capacity=capacity, error_rate=error_rate)
    raise ValueError(f"Unknown dedup mode: {mode}")
