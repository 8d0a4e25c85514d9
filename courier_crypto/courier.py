"""
Sender / Receiver
=================
The two ends of a case transfer, wired around the envelope protocol.

Sender:   ask the directory who to encrypt for, build the envelope (falling
          back to the legacy single key when the directory is empty or
          unreachable) and hand the wire payload to a submit callable.

Receiver: store incoming envelopes as ciphertext only, list cases, and
          decrypt on demand when a case is downloaded. The download carries
          the digest verdict; a False verdict must be shown to the consumer.

The transport between them is any callable taking the wire payload dict and
returning the new case id.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Tuple

from .builder import EnvelopeBuilder
from .config import CourierConfig
from .directory import DirectoryLookup, Empty, Found, Unavailable
from .envelope import Envelope
from .errors import CaseNotFoundError, EnvelopeFormatError
from .identity import Identity
from .models import SubmitEnvelopeIn, parse_payload
from .opener import EnvelopeOpener
from .registry import KeyRegistry
from .storage import CaseStore, MemoryCaseStore, SQLCaseStore, SQLKeyStore, make_engine

logger = logging.getLogger(__name__)

SubmitFn = Callable[[Dict[str, Any]], int]


# ── Sender ────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SendReceipt:
    case_id:        int
    content_digest: str
    recipients:     Tuple[str, ...]
    legacy:         bool


class Sender:

    def __init__(self, directory: DirectoryLookup, submit: SubmitFn,
                 builder: EnvelopeBuilder = None):
        self._directory = directory
        self._submit    = submit
        self._builder   = builder or EnvelopeBuilder()

    def seal(self, data: bytes) -> Envelope:
        result = self._directory.active_recipients()
        if isinstance(result, Found):
            return self._builder.build(data, result.recipients)
        if isinstance(result, Unavailable):
            logger.warning(f"Key directory unavailable ({result.reason}); "
                           "falling back to legacy public key")
        elif isinstance(result, Empty):
            logger.warning("Key directory has no active keys; falling back to legacy public key")
        else:
            raise TypeError(f"Unknown lookup result: {result!r}")
        return self._builder.build_legacy(data, self._directory.legacy_public_key())

    def send(self, case_name: str, file_name: str, data: bytes) -> SendReceipt:
        logger.info(f"Sending case \"{case_name}\" (file: {file_name}, size: {len(data)} bytes)")
        envelope = self.seal(data)
        payload = {"caseName": case_name, "fileName": file_name, **envelope.to_wire()}
        case_id = self._submit(payload)
        recipients = () if envelope.is_legacy else envelope.wrapped_keys.key_ids
        logger.info(f"Case \"{case_name}\" delivered as id={case_id}")
        return SendReceipt(case_id, envelope.content_digest, recipients, envelope.is_legacy)


# ── Case listing ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class CaseSummary:
    id:             int
    case_name:      str
    file_name:      str
    content_digest: str
    received_at:    datetime


# ── Receiver ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Download:
    file_name: str
    plaintext: bytes = field(repr=False)
    verified:  bool


class Receiver:

    def __init__(self, identity: Identity, cases: CaseStore = None):
        self.identity = identity
        self._opener  = EnvelopeOpener(identity)
        self._cases   = cases if cases is not None else MemoryCaseStore()

    @classmethod
    def boot(cls, config: CourierConfig = None,
             cases: CaseStore = None) -> Tuple["Receiver", KeyRegistry]:
        """Load-or-generate the key pair, open the registry and case tables, seed our own key."""
        config = config or CourierConfig.from_env()
        identity = Identity.load_or_generate(config.private_key_path,
                                             config.public_key_path,
                                             config.rsa_key_size)
        engine = make_engine(config.db_url)
        registry = KeyRegistry(SQLKeyStore(engine=engine))
        registry.ensure_registered(identity.public_pem, config.device_name,
                                   config.owner_email)
        if cases is None:
            cases = SQLCaseStore(engine=engine)
        return cls(identity, cases), registry

    def public_key(self) -> str:
        return self.identity.public_pem

    def receive(self, payload: Mapping[str, Any]) -> int:
        submitted = parse_payload(SubmitEnvelopeIn, payload, EnvelopeFormatError)
        case_name, file_name = submitted.caseName, submitted.fileName
        envelope = Envelope.from_model(submitted)

        logger.info(f"Receiving encrypted case: {case_name}")
        record = self._cases.create(case_name, file_name, envelope)
        logger.info(f"Case stored with id={record.id} (ciphertext only)")
        return record.id

    def list_cases(self) -> List[CaseSummary]:
        return [CaseSummary(c.id, c.case_name, c.file_name,
                            c.envelope.content_digest, c.received_at)
                for c in self._cases.find_all()]

    def download(self, case_id: int) -> Download:
        record = self._cases.find_one(case_id)
        if record is None:
            raise CaseNotFoundError(case_id)
        logger.info(f"Decrypting case {case_id} on demand")
        opened = self._opener.open(record.envelope)
        if not opened.verified:
            logger.warning(f"Case {case_id} ({record.file_name}) failed hash verification; "
                           "serving with warning")
        return Download(record.file_name, opened.plaintext, opened.verified)
