"""
Integrity Hasher: SHA-256
=========================
Content digest of the plaintext document.

Computed twice per transfer: by the sender before encryption, and by the
receiver over the recovered plaintext. Equality of the two is the end-to-end
integrity verdict, independent of the cipher's own tag.

Output: 64 lowercase hex characters.
"""

import hashlib
import hmac

DIGEST_HEX_LENGTH = 64


def digest(data: bytes) -> str:
    """SHA-256 of raw bytes as lowercase hex. Bytes only, no transformation."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"digest expects bytes, got {type(data).__name__}")
    return hashlib.sha256(data).hexdigest()


def verify(data: bytes, expected_hex: str) -> bool:
    """Constant-time comparison of digest(data) against an expected hex digest.

    Any expected value that is not a matching digest, including non-ASCII
    text, is simply a mismatch.
    """
    if not isinstance(expected_hex, str):
        return False
    return hmac.compare_digest(digest(data).encode("ascii"),
                               expected_hex.lower().encode("utf-8"))
