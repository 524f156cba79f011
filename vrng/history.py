"""
vrng.history
============

Bounded block-hash history used by the most-normalized strategy.

Only the most recent ``BLOCKHASH_WINDOW`` (256) sealed blocks are visible.
Asking for anything else (the current, unsealed block, a future block, a
negative index, or a block older than the window) yields ``ZERO_HASH``. This
degraded-but-defined behavior is part of the contract: callers fold the zero
fingerprint into their hash instead of treating it as an error.

Design goals
------------
- O(1) append and eviction.
- O(1) lookup by block index for items still in the buffer.
- Thread-safe for light concurrent readers/writers.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, Optional, Protocol, runtime_checkable

from .hashing import keccak_words
from .types import ZERO_HASH

BLOCKHASH_WINDOW = 256


@runtime_checkable
class BlockHashSource(Protocol):
    """What a normalizer needs from the host environment."""

    @property
    def height(self) -> int: ...

    def block_hash(self, index: int) -> bytes: ...


class BlockHistory:
    """
    Ring buffer of recent block hashes keyed by block index.

    ``height`` is the index of the block currently executing. Blocks
    ``0 .. height - 1`` have been sealed; only the newest ``capacity`` of them
    are retained.
    """

    __slots__ = ("_cap", "_height", "_order", "_by_index", "_lock")

    def __init__(self, capacity: int = BLOCKHASH_WINDOW, *, start_height: int = 0):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if start_height < 0:
            raise ValueError("start_height must be >= 0")
        self._cap: int = int(capacity)
        self._height: int = int(start_height)
        self._order: Deque[int] = deque()
        self._by_index: Dict[int, bytes] = {}
        self._lock = threading.RLock()

    # ------------------------ properties ------------------------

    @property
    def capacity(self) -> int:
        return self._cap

    @property
    def height(self) -> int:
        with self._lock:
            return self._height

    def __len__(self) -> int:  # pragma: no cover - trivial
        with self._lock:
            return len(self._order)

    def latest_hash(self) -> Optional[bytes]:
        """Hash of the most recently sealed block, or None if none retained."""
        with self._lock:
            return self._by_index[self._order[-1]] if self._order else None

    # ------------------------ mutation ------------------------

    def append(self, block_hash: bytes) -> int:
        """
        Seal the current block with ``block_hash`` and advance the height.
        Returns the index of the sealed block.
        """
        b = bytes(block_hash)
        if len(b) != 32:
            raise ValueError(f"block hash must be 32 bytes, got {len(b)}")
        with self._lock:
            idx = self._height
            self._order.append(idx)
            self._by_index[idx] = b
            self._height += 1

            if len(self._order) > self._cap:
                oldest = self._order.popleft()
                del self._by_index[oldest]
            return idx

    def mine(self, n: int = 1) -> bytes:
        """
        Seal ``n`` blocks with deterministic hashes
        ``keccak256(parent_hash || u256(index))`` and return the last one.
        """
        if n <= 0:
            raise ValueError("n must be > 0")
        with self._lock:
            parent = self.latest_hash() or ZERO_HASH
            for _ in range(n):
                parent = keccak_words(parent, self._height)
                self.append(parent)
            return parent

    # ------------------------ lookup ------------------------

    def in_window(self, index: int) -> bool:
        with self._lock:
            return self._height - BLOCKHASH_WINDOW <= index < self._height and index >= 0

    def block_hash(self, index: int) -> bytes:
        """Fingerprint of block ``index``, or ``ZERO_HASH`` outside the window."""
        with self._lock:
            if not self.in_window(index):
                return ZERO_HASH
            return self._by_index.get(index, ZERO_HASH)


__all__ = ["BLOCKHASH_WINDOW", "BlockHashSource", "BlockHistory"]
