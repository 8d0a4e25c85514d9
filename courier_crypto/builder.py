"""
Envelope Builder (sender side)
==============================
Hybrid RSA + AES-256-GCM envelope encryption for one or many recipients.

    1. digest the plaintext (SHA-256)
    2. generate ONE fresh AES-256 key + nonce
    3. encrypt the document once with AES-256-GCM
    4. wrap the session key separately under every recipient's RSA key

Each recipient gets an independent OAEP-wrapped copy of the same session
key, so any one of them can open the envelope on their own.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .envelope import Envelope, LegacyKey, MultiRecipientKeys, RecipientKey
from .errors import NoRecipientsError
from .primitives import hasher
from .primitives.aes import AESCipher
from .primitives.rsa import RSAKeyWrapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """An authorized recipient as offered to senders."""

    key_id:      str
    public_key:  str = field(repr=False)
    device_name: str = ""


class EnvelopeBuilder:

    def build(self, plaintext: bytes, recipients: Iterable[Recipient]) -> Envelope:
        """Encrypt for every recipient, preserving their order in wrapped_keys."""
        recipients = list(recipients)
        if not recipients:
            raise NoRecipientsError("Refusing to build an envelope with no recipients.")

        content_digest, session, ciphertext, tag = self._seal(plaintext)
        entries = tuple(
            RecipientKey(r.key_id, RSAKeyWrapper.wrap(session.key, r.public_key))
            for r in recipients
        )
        logger.info(f"Envelope built for {len(entries)} recipient(s): "
                    f"{', '.join(e.key_id for e in entries)}")
        return Envelope(
            ciphertext=ciphertext,
            wrapped_keys=MultiRecipientKeys(entries),
            nonce=session.nonce,
            auth_tag=tag,
            content_digest=content_digest,
        )

    def build_legacy(self, plaintext: bytes, public_key: str) -> Envelope:
        """Single-recipient envelope with a bare wrapped key, for legacy receivers."""
        if not public_key:
            raise NoRecipientsError("Legacy envelope needs a public key.")
        content_digest, session, ciphertext, tag = self._seal(plaintext)
        wrapped = RSAKeyWrapper.wrap(session.key, public_key)
        logger.info("Envelope built in legacy single-recipient shape")
        return Envelope(
            ciphertext=ciphertext,
            wrapped_keys=LegacyKey(wrapped),
            nonce=session.nonce,
            auth_tag=tag,
            content_digest=content_digest,
        )

    @staticmethod
    def _seal(plaintext: bytes):
        content_digest = hasher.digest(plaintext)
        session = AESCipher.generate_session_key()
        ciphertext, tag = AESCipher.encrypt(plaintext, session.key, session.nonce)
        logger.debug(f"Sealed {len(plaintext)}B -> {len(ciphertext)}B, digest={content_digest}")
        return content_digest, session, ciphertext, tag
