"""
vrng.normalize
==============

Normalization strategies: ``(raw_value, request_id) -> normalized_value``.

Three policies, selected once per coordinator:

- HYPER_EFFICIENT       ``(request_id + raw_value) mod 2**256``. Cheapest,
                        output is linear in its inputs.
- HASH_WITH_REQUEST_ID  ``keccak256(u256(request_id) || u256(raw_value))``.
                        One hash fully mixes both inputs.
- MOST_NORMALIZED       ``keccak256(blockhash(height - request_id % 256) ||
                        u256(raw_value))``. Folds in a recent block
                        fingerprint picked by the request id. Outside the
                        256-block window the fingerprint is all zeros.

Resolution happens in :meth:`Normalizer.for_method`; the resulting frozen
``Normalizer`` carries the bound algorithm for the lifetime of its owner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import InvalidNormalizationMethod
from .hashing import digest_to_int, keccak_words
from .history import BLOCKHASH_WINDOW, BlockHashSource
from .types import UINT256_MOD, NormalizationMethod

Algorithm = Callable[[int, int, Optional[BlockHashSource]], int]
MethodLike = Union[NormalizationMethod, int, str]

# Accepted spellings for configuration files and the CLI.
_ALIASES: Dict[str, NormalizationMethod] = {
    "hyper_efficient": NormalizationMethod.HYPER_EFFICIENT,
    "hyper": NormalizationMethod.HYPER_EFFICIENT,
    "add": NormalizationMethod.HYPER_EFFICIENT,
    "hash_with_request_id": NormalizationMethod.HASH_WITH_REQUEST_ID,
    "hash": NormalizationMethod.HASH_WITH_REQUEST_ID,
    "most_normalized": NormalizationMethod.MOST_NORMALIZED,
    "blockhash": NormalizationMethod.MOST_NORMALIZED,
}


def hyper_efficient(raw_value: int, request_id: int, history: Optional[BlockHashSource] = None) -> int:
    return (request_id + raw_value) % UINT256_MOD


def hash_with_request_id(
    raw_value: int, request_id: int, history: Optional[BlockHashSource] = None
) -> int:
    return digest_to_int(keccak_words(request_id, raw_value))


def most_normalized(raw_value: int, request_id: int, history: Optional[BlockHashSource] = None) -> int:
    if history is None:
        raise InvalidNormalizationMethod(
            NormalizationMethod.MOST_NORMALIZED,
            reason="most-normalized strategy needs a block history",
        )
    index = history.height - (request_id % BLOCKHASH_WINDOW)
    fingerprint = history.block_hash(index)
    return digest_to_int(keccak_words(fingerprint, raw_value))


_ALGORITHMS: Dict[NormalizationMethod, Algorithm] = {
    NormalizationMethod.HYPER_EFFICIENT: hyper_efficient,
    NormalizationMethod.HASH_WITH_REQUEST_ID: hash_with_request_id,
    NormalizationMethod.MOST_NORMALIZED: most_normalized,
}


def parse_method(method: Any) -> NormalizationMethod:
    """
    Map an int, enum member or name onto a :class:`NormalizationMethod`.
    Anything else raises :class:`InvalidNormalizationMethod`.
    """
    if isinstance(method, NormalizationMethod):
        return method
    if isinstance(method, bool):
        raise InvalidNormalizationMethod(method)
    if isinstance(method, int):
        try:
            return NormalizationMethod(method)
        except ValueError:
            raise InvalidNormalizationMethod(method) from None
    if isinstance(method, str):
        key = method.strip().lower().replace("-", "_")
        if key.isdigit():
            return parse_method(int(key))
        if key in _ALIASES:
            return _ALIASES[key]
    raise InvalidNormalizationMethod(method)


def resolve(method: MethodLike) -> Algorithm:
    return _ALGORITHMS[parse_method(method)]


def aliases_of(method: MethodLike) -> List[str]:
    """Accepted names for ``method``, sorted."""
    m = parse_method(method)
    return sorted(k for k, v in _ALIASES.items() if v is m)


@dataclass(frozen=True)
class Normalizer:
    """A normalization method bound to its algorithm (and history, if any)."""

    method: NormalizationMethod
    _fn: Algorithm = field(repr=False)
    history: Optional[BlockHashSource] = field(default=None, repr=False)

    @classmethod
    def for_method(
        cls, method: MethodLike, history: Optional[BlockHashSource] = None
    ) -> "Normalizer":
        m = parse_method(method)
        if m is NormalizationMethod.MOST_NORMALIZED and history is None:
            raise InvalidNormalizationMethod(
                m, reason="most-normalized strategy needs a block history"
            )
        return cls(method=m, _fn=_ALGORITHMS[m], history=history)

    def __call__(self, raw_value: int, request_id: int) -> int:
        return self._fn(raw_value, request_id, self.history)


__all__ = [
    "Algorithm",
    "MethodLike",
    "hyper_efficient",
    "hash_with_request_id",
    "most_normalized",
    "parse_method",
    "resolve",
    "aliases_of",
    "Normalizer",
]
