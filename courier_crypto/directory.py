"""
Directory lookup
================
How a sender discovers who to encrypt for.

active_recipients() never raises; it answers with one of

    Found(recipients)    encrypt for exactly these keys
    Empty()              registry reachable, but no active keys
    Unavailable(reason)  registry could not be asked

and the Sender branches on the value. Empty and Unavailable both lead to
the legacy single-key fallback.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple, Union

from .builder import Recipient
from .identity import Identity
from .registry import KeyRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    recipients: Tuple[Recipient, ...]

    def __post_init__(self):
        object.__setattr__(self, "recipients", tuple(self.recipients))
        if not self.recipients:
            raise ValueError("Found requires at least one recipient; use Empty.")


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Unavailable:
    reason: str


LookupResult = Union[Found, Empty, Unavailable]


def lookup_result(recipients) -> LookupResult:
    recipients = tuple(recipients)
    return Found(recipients) if recipients else Empty()


class DirectoryLookup(ABC):
    """Sender-side view of the receiver's key directory."""

    @abstractmethod
    def active_recipients(self) -> LookupResult:
        ...

    @abstractmethod
    def legacy_public_key(self) -> str:
        """The receiver's single public key (PEM)."""


class RegistryDirectory(DirectoryLookup):
    """Directory served straight from a local registry and receiver identity."""

    def __init__(self, registry: KeyRegistry, identity: Identity):
        self._registry = registry
        self._identity = identity

    def active_recipients(self) -> LookupResult:
        try:
            return lookup_result(self._registry.active_keys())
        except Exception as exc:
            logger.warning(f"Active key lookup failed: {exc}")
            return Unavailable(str(exc))

    def legacy_public_key(self) -> str:
        return self._identity.public_pem
