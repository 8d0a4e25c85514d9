"""
Asymmetric Key Wrapper: RSA + OAEP
==================================
Wraps the per-document AES session key under a recipient's RSA public key.

OAEP (Optimal Asymmetric Encryption Padding) with SHA-256 and MGF1-SHA-256.
Public keys travel as PEM (SubjectPublicKeyInfo) text; that exact text is
also what the key id is computed over.

A 3072-bit modulus gives ~128-bit classical security. Keys below 2048 bits
are refused.

Dependencies: cryptography >= 41.0
"""

from typing import Union

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..errors import InvalidPublicKeyError, UnwrapError

PemLike = Union[str, bytes]


def _as_bytes(pem: PemLike) -> bytes:
    return pem.encode("utf-8") if isinstance(pem, str) else bytes(pem)


class RSAKeyWrapper:
    """RSA-OAEP session-key wrapping."""

    KEY_SIZE     = 3072
    MIN_KEY_SIZE = 2048

    # ── key material ──────────────────────────────────────────────────────────
    @classmethod
    def generate_keypair(cls, key_size: int = None) -> rsa.RSAPrivateKey:
        """Generate a fresh RSA private key (the public half is derived from it)."""
        key_size = key_size or cls.KEY_SIZE
        if key_size < cls.MIN_KEY_SIZE:
            raise ValueError(f"RSA modulus must be at least {cls.MIN_KEY_SIZE} bits.")
        return rsa.generate_private_key(public_exponent=65537, key_size=key_size)

    @staticmethod
    def export_public_pem(key) -> str:
        if isinstance(key, rsa.RSAPrivateKey):
            key = key.public_key()
        return key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    @staticmethod
    def export_private_pem(private_key: rsa.RSAPrivateKey) -> bytes:
        return private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )

    @classmethod
    def load_public_pem(cls, public_pem: PemLike) -> rsa.RSAPublicKey:
        """Parse a PEM public key, rejecting anything that is not RSA."""
        try:
            key = serialization.load_pem_public_key(_as_bytes(public_pem))
        except (ValueError, TypeError) as exc:
            raise InvalidPublicKeyError("Public key is not valid PEM.") from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise InvalidPublicKeyError("Public key is not an RSA key.")
        if key.key_size < cls.MIN_KEY_SIZE:
            raise InvalidPublicKeyError(
                f"RSA modulus must be at least {cls.MIN_KEY_SIZE} bits."
            )
        return key

    @staticmethod
    def load_private_pem(private_pem: PemLike) -> rsa.RSAPrivateKey:
        key = serialization.load_pem_private_key(_as_bytes(private_pem), password=None)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("Private key is not an RSA key.")
        return key

    # ── wrap / unwrap ─────────────────────────────────────────────────────────
    @staticmethod
    def _oaep():
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=None
        )

    @classmethod
    def wrap(cls, session_key: bytes, recipient_public_key) -> bytes:
        """Encrypt the session key for one recipient (PEM text or loaded key)."""
        if not isinstance(recipient_public_key, rsa.RSAPublicKey):
            recipient_public_key = cls.load_public_pem(recipient_public_key)
        return recipient_public_key.encrypt(session_key, cls._oaep())

    @classmethod
    def unwrap(cls, wrapped_key: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
        """Recover the session key. Raises UnwrapError on any failure."""
        if len(wrapped_key) != private_key.key_size // 8:
            raise UnwrapError(
                f"Wrapped key is {len(wrapped_key)}B, expected "
                f"{private_key.key_size // 8}B for this private key."
            )
        try:
            return private_key.decrypt(wrapped_key, cls._oaep())
        except ValueError as exc:
            raise UnwrapError("OAEP decryption failed (wrong key or corrupted data).") from exc
