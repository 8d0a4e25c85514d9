"""
Key Identity Function
=====================
keyId = first 16 hex chars of SHA-256 over the encoded public key.

This is the join key between "who an envelope was encrypted for" and
"who can decrypt it". It is an identifier, not a security boundary:
64 bits of digest keeps accidental collisions negligible at registry scale.

The digest is taken over the exact bytes given. No PEM normalization is
done, so the same key with different line endings gets a different id.
"""

import hashlib
from typing import Union

KEY_ID_LENGTH = 16


def key_id(public_key_encoded: Union[str, bytes]) -> str:
    if isinstance(public_key_encoded, str):
        public_key_encoded = public_key_encoded.encode("utf-8")
    return hashlib.sha256(public_key_encoded).hexdigest()[:KEY_ID_LENGTH]
