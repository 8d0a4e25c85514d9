"""
Symmetric Cipher: AES-256-GCM
=============================
AES-256 in Galois/Counter Mode, with the authentication tag kept separate
from the ciphertext so the envelope can carry it as its own field.

Key size: 256 bits (32 bytes), one fresh key per document.
Nonce:    96 bits (12 bytes), generated together with the key.
Tag:      128 bits (16 bytes).

A key and its nonce are only ever produced as a pair by
generate_session_key(), so a nonce can never be reused under the same key.

Dependencies: cryptography >= 41.0
"""

import os
from dataclasses import dataclass, field
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import AuthenticationError


@dataclass(frozen=True)
class SessionKeyMaterial:
    """Ephemeral key + nonce for exactly one envelope. Never persisted."""

    key:   bytes = field(repr=False)
    nonce: bytes


class AESCipher:
    """AES-256-GCM authenticated encryption with a detached tag."""

    KEY_SIZE   = 32   # 256-bit key
    NONCE_SIZE = 12   # 96-bit nonce (GCM standard)
    TAG_SIZE   = 16   # 128-bit tag

    @classmethod
    def generate_session_key(cls) -> SessionKeyMaterial:
        return SessionKeyMaterial(
            key=os.urandom(cls.KEY_SIZE),
            nonce=os.urandom(cls.NONCE_SIZE),
        )

    @classmethod
    def encrypt(cls, plaintext: bytes, key: bytes, nonce: bytes) -> Tuple[bytes, bytes]:
        """
        Encrypt and authenticate.
        Returns: (ciphertext, tag)
        """
        if len(key) != cls.KEY_SIZE:
            raise ValueError(f"AES-256 key must be {cls.KEY_SIZE} bytes.")
        if len(nonce) != cls.NONCE_SIZE:
            raise ValueError(f"GCM nonce must be {cls.NONCE_SIZE} bytes.")
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        return sealed[:-cls.TAG_SIZE], sealed[-cls.TAG_SIZE:]

    @classmethod
    def decrypt(cls, ciphertext: bytes, key: bytes, nonce: bytes, tag: bytes) -> bytes:
        """
        Verify the tag, then decrypt.
        Raises AuthenticationError if anything was tampered with.
        """
        if len(key) != cls.KEY_SIZE:
            raise AuthenticationError("Session key has the wrong length.")
        if len(nonce) != cls.NONCE_SIZE or len(tag) != cls.TAG_SIZE:
            raise AuthenticationError("Nonce or tag has the wrong length.")
        try:
            return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            raise AuthenticationError("Authentication tag did not verify.") from exc
