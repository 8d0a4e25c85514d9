"""
Errors
======
Exception taxonomy for the envelope protocol and the key registry.

Cryptographic failures (UnwrapError, AuthenticationError) are fatal for the
document being opened. Retrying cannot change the outcome, so nothing here is
retried. A digest mismatch is NOT an error; see EnvelopeOpener.
"""


class CourierError(Exception):
    """Base class for every error raised by courier_crypto."""


# ── Envelope protocol ─────────────────────────────────────────────────────────
class NoRecipientsError(CourierError):
    """An envelope was requested with an empty recipient set."""


class RecipientNotFoundError(CourierError):
    """The envelope carries no wrapped key for the local identity."""

    def __init__(self, key_id: str):
        super().__init__(f"Envelope was not encrypted for key {key_id}")
        self.key_id = key_id


class UnwrapError(CourierError):
    """The session key could not be unwrapped (wrong private key or corrupt data)."""


class AuthenticationError(CourierError):
    """The AES-GCM tag did not verify. No plaintext is released."""


class PayloadError(CourierError):
    """A JSON payload failed validation against its wire model."""


class EnvelopeFormatError(PayloadError):
    """A wire payload does not describe a valid envelope."""


# ── Registry ──────────────────────────────────────────────────────────────────
class InvalidPublicKeyError(CourierError):
    """The supplied public key is not a PEM-encoded RSA public key."""


class ConflictError(CourierError):
    """The key is already registered and active."""

    def __init__(self, key_id: str):
        super().__init__(f"Key {key_id} is already registered and active")
        self.key_id = key_id


class NotFoundError(CourierError):
    """No registry row exists for the key id."""

    def __init__(self, key_id: str):
        super().__init__(f"Key {key_id} not found")
        self.key_id = key_id


class DuplicateKeyError(CourierError):
    """Storage-level unique violation on key_id (lost a create race)."""


# ── Cases ─────────────────────────────────────────────────────────────────────
class CaseNotFoundError(CourierError):
    def __init__(self, case_id: int):
        super().__init__(f"Case {case_id} not found")
        self.case_id = case_id
