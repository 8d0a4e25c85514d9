"""
Envelope Opener (receiver side)
===============================
Recovers the plaintext of an envelope with the local Identity and reports
whether it matches the sender's content digest.

Failure modes:
  RecipientNotFoundError  the envelope was never encrypted for this identity
  UnwrapError             wrong private key or corrupted wrapped key
  AuthenticationError     GCM tag failed; nothing is returned
  verified=False          digest mismatch; plaintext IS returned and the
                          caller must warn the consumer before it is trusted
"""

import logging
from dataclasses import dataclass, field

from .envelope import Envelope, LegacyKey, MultiRecipientKeys
from .errors import AuthenticationError, RecipientNotFoundError, UnwrapError
from .identity import Identity
from .primitives import hasher
from .primitives.aes import AESCipher
from .primitives.rsa import RSAKeyWrapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenedDocument:
    plaintext: bytes = field(repr=False)
    verified:  bool


class EnvelopeOpener:

    def __init__(self, identity: Identity):
        self._identity = identity

    @property
    def key_id(self) -> str:
        return self._identity.key_id

    def select_wrapped_key(self, envelope: Envelope) -> bytes:
        keys = envelope.wrapped_keys
        if isinstance(keys, LegacyKey):
            return keys.wrapped
        if isinstance(keys, MultiRecipientKeys):
            entry = keys.for_key(self.key_id)
            if entry is None:
                logger.error(f"No wrapped key for {self.key_id}; "
                             f"envelope recipients: {', '.join(keys.key_ids)}")
                raise RecipientNotFoundError(self.key_id)
            return entry.wrapped
        raise TypeError(f"Unknown wrapped key shape: {type(keys).__name__}")

    def open(self, envelope: Envelope) -> OpenedDocument:
        wrapped = self.select_wrapped_key(envelope)
        shape = "legacy" if envelope.is_legacy else "multi-recipient"

        try:
            session_key = RSAKeyWrapper.unwrap(wrapped, self._identity.private_key)
        except UnwrapError:
            logger.error(f"Session key unwrap failed ({shape} envelope, "
                         f"keyId={self.key_id}, wrapped={len(wrapped)}B): "
                         "wrong key or corrupted wrapped key")
            raise

        try:
            plaintext = AESCipher.decrypt(envelope.ciphertext, session_key,
                                          envelope.nonce, envelope.auth_tag)
        except AuthenticationError:
            logger.error(f"AES-GCM authentication failed ({shape} envelope, "
                         f"ciphertext={len(envelope.ciphertext)}B): "
                         "ciphertext, nonce or tag was altered")
            raise

        verified = hasher.verify(plaintext, envelope.content_digest)
        if verified:
            logger.info("SHA-256 hash verification: PASSED")
        else:
            logger.warning("SHA-256 hash verification: FAILED "
                           f"(expected {envelope.content_digest}, "
                           f"computed {hasher.digest(plaintext)})")
        return OpenedDocument(plaintext=plaintext, verified=verified)
