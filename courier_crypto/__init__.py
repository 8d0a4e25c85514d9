"""
courier_crypto
==============
Envelope encryption for confidential case documents.

A sender encrypts a document once with AES-256-GCM and wraps the one-time
session key under the RSA public key of every authorized recipient. The
receiver keeps only the ciphertext and decrypts on demand, checking a
SHA-256 content digest end to end.

Components:
    Hasher      — SHA-256 content digest
    Cipher      — AES-256-GCM (detached tag)
    Wrapper     — RSA + OAEP session-key wrapping
    Key ids     — SHA-256(public PEM)[:16]
    Registry    — authorized recipient keys (active / revoked)
    Builder     — sender side, multi-recipient or legacy single key
    Opener      — receiver side, with digest verdict

License: Apache 2.0
"""

__version__  = "1.0.0"

from .primitives              import hasher, AESCipher, SessionKeyMaterial, RSAKeyWrapper
from .keyid                   import key_id, KEY_ID_LENGTH
from .identity                import Identity
from .envelope                import Envelope, LegacyKey, MultiRecipientKeys, RecipientKey
from .builder                 import EnvelopeBuilder, Recipient
from .opener                  import EnvelopeOpener, OpenedDocument
from .storage                 import (AuthorizedKey, MemoryKeyStore, SQLKeyStore,
                                      MemoryCaseStore, SQLCaseStore)
from .models                  import SubmitEnvelopeIn, RegisterKeyIn
from .registry                import KeyRegistry, KeySummary
from .directory               import (DirectoryLookup, RegistryDirectory,
                                      Found, Empty, Unavailable)
from .courier                 import Sender, Receiver, SendReceipt, Download
from .config                  import CourierConfig
from .errors                  import (CourierError, NoRecipientsError, ConflictError,
                                      NotFoundError, RecipientNotFoundError, UnwrapError,
                                      AuthenticationError, PayloadError, EnvelopeFormatError,
                                      InvalidPublicKeyError, CaseNotFoundError)

__all__ = [
    "hasher", "AESCipher", "SessionKeyMaterial", "RSAKeyWrapper",
    "key_id", "KEY_ID_LENGTH",
    "Identity",
    "Envelope", "LegacyKey", "MultiRecipientKeys", "RecipientKey",
    "EnvelopeBuilder", "Recipient",
    "EnvelopeOpener", "OpenedDocument",
    "AuthorizedKey", "MemoryKeyStore", "SQLKeyStore", "MemoryCaseStore", "SQLCaseStore",
    "SubmitEnvelopeIn", "RegisterKeyIn",
    "KeyRegistry", "KeySummary",
    "DirectoryLookup", "RegistryDirectory", "Found", "Empty", "Unavailable",
    "Sender", "Receiver", "SendReceipt", "Download",
    "CourierConfig",
    "CourierError", "NoRecipientsError", "ConflictError", "NotFoundError",
    "RecipientNotFoundError", "UnwrapError", "AuthenticationError",
    "PayloadError", "EnvelopeFormatError", "InvalidPublicKeyError", "CaseNotFoundError",
]
