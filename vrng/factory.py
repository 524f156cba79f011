"""
vrng.factory
============

Deploy coordinator instances at derived addresses and look them up later.

Address rules (32-byte results, domain-tagged):

    salted:    keccak256(0xff || deployer || salt32 || CODE_TAG)
    unsalted:  keccak256(deployer || u256(nonce))

Salted addresses are predictable before deployment; unsalted ones consume the
factory nonce. A failed construction registers nothing and, for
:meth:`ConsumerFactory.try_deploy`, reports ``ZERO_ADDRESS``.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple, Union

from .coordinator import FulfilledHook, VRNGConsumer
from .errors import AddressCollision, InvalidNormalizationMethod
from .events import EventLog
from .hashing import keccak256, u256
from .history import BlockHashSource
from .metrics import Metrics
from .normalize import MethodLike
from .types import ZERO_ADDRESS, AddressLike, to_address, to_hex

log = logging.getLogger("vrng.factory")

CODE_TAG = keccak256(b"vrng.VRNGConsumer.v1")

Salt = Union[bytes, int, str]


def _salt32(salt: Salt) -> bytes:
    if isinstance(salt, int):
        return u256(salt)
    if isinstance(salt, str):
        return keccak256(salt.encode("utf-8"))
    b = bytes(salt)
    if len(b) > 32:
        raise ValueError(f"salt must be at most 32 bytes, got {len(b)}")
    return b.rjust(32, b"\x00")


class ConsumerFactory:
    """Creates and indexes ``VRNGConsumer`` instances for one deployer."""

    def __init__(
        self,
        deployer: AddressLike,
        *,
        history: Optional[BlockHashSource] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.deployer = to_address(deployer)
        self._history = history
        self._metrics = metrics
        self._nonce = 0
        self._deployed: Dict[bytes, VRNGConsumer] = {}

    def predict_address(self, salt: Optional[Salt] = None) -> bytes:
        if salt is None:
            return keccak256(self.deployer + u256(self._nonce))
        return keccak256(b"\xff" + self.deployer + _salt32(salt) + CODE_TAG)

    def deploy(
        self,
        method: MethodLike,
        *,
        salt: Optional[Salt] = None,
        on_fulfilled: Optional[FulfilledHook] = None,
        events: Optional[EventLog] = None,
    ) -> Tuple[bytes, VRNGConsumer]:
        address = self.predict_address(salt)
        if address in self._deployed:
            raise AddressCollision(address=address)

        consumer = VRNGConsumer(
            method,
            history=self._history,
            on_fulfilled=on_fulfilled,
            events=events,
            metrics=self._metrics,
            name=to_hex(address)[:18],
        )
        if salt is None:
            self._nonce += 1
        self._deployed[address] = consumer
        log.info(
            "consumer_deployed",
            extra={"address": to_hex(address), "method": consumer.method.name},
        )
        return address, consumer

    def try_deploy(self, method: MethodLike, **kwargs) -> bytes:
        """Like :meth:`deploy`, but a rejected method yields ``ZERO_ADDRESS``."""
        try:
            address, _ = self.deploy(method, **kwargs)
        except InvalidNormalizationMethod as e:
            log.info("consumer_deploy_failed", extra={"code": e.code, "method": repr(method)})
            return ZERO_ADDRESS
        return address

    def get(self, address: AddressLike) -> Optional[VRNGConsumer]:
        return self._deployed.get(to_address(address))

    def __len__(self) -> int:
        return len(self._deployed)


__all__ = ["CODE_TAG", "ConsumerFactory"]
