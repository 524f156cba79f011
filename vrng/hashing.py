"""
vrng.hashing: Keccak-256 over packed 32-byte words.

Bytes in, bytes out. Integers are packed as 32-byte big-endian words (the
packed ABI encoding of uint256), so ``keccak_words(a, b)`` equals
``keccak256(u256(a) || u256(b))``. Digests read back as integers with
:func:`digest_to_int`.

Keccak-256 is the pre-SHA3 variant provided by pycryptodome; it differs from
``hashlib.sha3_256``.
"""

from __future__ import annotations

from typing import Union

from Crypto.Hash import keccak as _keccak

from .types import require_uint256

Word = Union[int, bytes, bytearray, memoryview]


def keccak256(data: Union[bytes, bytearray, memoryview]) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"data must be bytes-like (got {type(data).__name__})")
    h = _keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


def u256(x: int) -> bytes:
    """32-byte big-endian encoding of a uint256."""
    return require_uint256("word", x).to_bytes(32, "big")


def _word(w: Word) -> bytes:
    if isinstance(w, int):
        return u256(w)
    b = bytes(w)
    if len(b) != 32:
        raise ValueError(f"word must be 32 bytes, got {len(b)}")
    return b


def keccak_words(*words: Word) -> bytes:
    """keccak256 of the concatenated 32-byte words."""
    return keccak256(b"".join(_word(w) for w in words))


def digest_to_int(digest: bytes) -> int:
    return int.from_bytes(digest, "big")


__all__ = ["keccak256", "u256", "keccak_words", "digest_to_int"]
