"""
Envelope
========
The wire/storage form of one encrypted document.

    ciphertext     AES-256-GCM output over the plaintext (tag detached)
    wrapped_keys   LegacyKey(wrapped)                          - one implicit recipient
                   MultiRecipientKeys([(key_id, wrapped), ...]) - one per recipient
    nonce          12-byte GCM nonce
    auth_tag       16-byte GCM tag
    content_digest SHA-256 hex of the plaintext, taken before encryption

Wire format (JSON-ready dict):

    {"ciphertext": b64, "wrappedKeys": b64 | [{"keyId": str, "wrappedKey": b64}],
     "nonce": hex, "authTag": hex, "contentDigest": hex}

Payloads are validated by the pydantic models in courier_crypto.models. The
wrapped-key shape is decided once, in Envelope.from_model(). Downstream
code matches on the variant type and never inspects raw payloads again.
"""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Tuple, Union

from .errors import EnvelopeFormatError
from .models import EnvelopeIn, parse_payload


@dataclass(frozen=True)
class LegacyKey:
    """Pre-multi-recipient shape: a bare wrapped key, no key id."""

    wrapped: bytes = field(repr=False)


@dataclass(frozen=True)
class RecipientKey:
    key_id:  str
    wrapped: bytes = field(repr=False)


@dataclass(frozen=True)
class MultiRecipientKeys:
    entries: Tuple[RecipientKey, ...]

    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))
        if not self.entries:
            raise EnvelopeFormatError("Multi-recipient envelope has no wrapped keys.")
        ids = [e.key_id for e in self.entries]
        if len(set(ids)) != len(ids):
            raise EnvelopeFormatError("Duplicate keyId in wrapped keys.")

    def __iter__(self) -> Iterator[RecipientKey]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def key_ids(self) -> Tuple[str, ...]:
        return tuple(e.key_id for e in self.entries)

    def for_key(self, key_id: str):
        for entry in self.entries:
            if entry.key_id == key_id:
                return entry
        return None


WrappedKeys = Union[LegacyKey, MultiRecipientKeys]


@dataclass(frozen=True)
class Envelope:
    ciphertext:     bytes = field(repr=False)
    wrapped_keys:   WrappedKeys
    nonce:          bytes
    auth_tag:       bytes
    content_digest: str

    @property
    def is_legacy(self) -> bool:
        return isinstance(self.wrapped_keys, LegacyKey)

    # ── wire codec ────────────────────────────────────────────────────────────
    def to_wire(self) -> Dict[str, Any]:
        if isinstance(self.wrapped_keys, LegacyKey):
            wrapped: Any = _b64(self.wrapped_keys.wrapped)
        else:
            wrapped = [{"keyId": e.key_id, "wrappedKey": _b64(e.wrapped)}
                       for e in self.wrapped_keys]
        return {
            "ciphertext":    _b64(self.ciphertext),
            "wrappedKeys":   wrapped,
            "nonce":         self.nonce.hex(),
            "authTag":       self.auth_tag.hex(),
            "contentDigest": self.content_digest,
        }

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "Envelope":
        return cls.from_model(parse_payload(EnvelopeIn, payload, EnvelopeFormatError))

    @classmethod
    def from_model(cls, model: EnvelopeIn) -> "Envelope":
        """Map a validated wire model onto the envelope, choosing the key shape."""
        if isinstance(model.wrappedKeys, bytes):
            wrapped_keys: WrappedKeys = LegacyKey(model.wrappedKeys)
        else:
            wrapped_keys = MultiRecipientKeys(tuple(
                RecipientKey(w.keyId, w.wrappedKey) for w in model.wrappedKeys
            ))
        return cls(
            ciphertext=model.ciphertext,
            wrapped_keys=wrapped_keys,
            nonce=model.nonce,
            auth_tag=model.authTag,
            content_digest=model.contentDigest.lower(),
        )


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
