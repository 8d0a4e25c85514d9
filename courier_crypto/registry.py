"""
Authorized Key Registry
=======================
The set of recipient keys senders must encrypt for.

Per-row state machine, rows are never deleted:

    unregistered --register--> active --revoke--> revoked
                                 ^                   |
                                 +----register-------+

Identity is bound to key material: key_id = key_id(public_key). Registering
a revoked key again reactivates the SAME row and takes the new device
metadata; no duplicate row is ever created.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .builder import Recipient
from .errors import ConflictError, DuplicateKeyError, NotFoundError
from .keyid import key_id as compute_key_id
from .models import KeyOut, KeySummaryOut, RegisterKeyIn, RevokeKeyIn, parse_payload
from .primitives.rsa import RSAKeyWrapper
from .storage import AuthorizedKey, KeyStore, MemoryKeyStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeySummary:
    """Administrative view of a row. Deliberately has no public key field."""

    key_id:      str
    device_name: str
    owner_email: Optional[str]
    is_active:   bool
    created_at:  datetime


class KeyRegistry:

    def __init__(self, store: KeyStore = None):
        self._store = store if store is not None else MemoryKeyStore()

    def register(self, public_key: str, device_name: str,
                 owner_email: Optional[str] = None) -> AuthorizedKey:
        if not device_name or not device_name.strip():
            raise ValueError("device_name is required.")
        RSAKeyWrapper.load_public_pem(public_key)
        key_id = compute_key_id(public_key)

        existing = self._store.get(key_id)
        if existing is None:
            try:
                row = self._store.insert(AuthorizedKey(
                    key_id=key_id,
                    public_key=public_key,
                    device_name=device_name,
                    owner_email=owner_email,
                ))
            except DuplicateKeyError:
                # lost a concurrent create; the winner's row decides
                existing = self._store.get(key_id)
            else:
                logger.info(f"Registering new authorized key: {key_id} ({device_name})")
                return row

        if existing.is_active:
            raise ConflictError(key_id)

        logger.info(f"Reactivating previously revoked key: {key_id} ({device_name})")
        return self._store.update(key_id, is_active=True, device_name=device_name,
                                  owner_email=owner_email)

    def revoke(self, key_id: str) -> AuthorizedKey:
        row = self._store.get(key_id)
        if row is None:
            raise NotFoundError(key_id)
        if not row.is_active:
            logger.warning(f"Key {key_id} is already revoked")
            return row
        logger.info(f"Revoking key: {key_id} ({row.device_name})")
        return self._store.update(key_id, is_active=False)

    def ensure_registered(self, public_key: str, device_name: str,
                          owner_email: Optional[str] = None) -> AuthorizedKey:
        """Boot-time seed: make sure this key is present and active.

        Metadata is only written for a new row; an existing row keeps its own.
        """
        key_id = compute_key_id(public_key)
        row = self._store.get(key_id)
        if row is None:
            return self.register(public_key, device_name, owner_email)
        if row.is_active:
            logger.info(f"Key {key_id} already registered (device: {row.device_name})")
            return row
        logger.info(f"Reactivated key {key_id}")
        return self._store.update(key_id, is_active=True)

    def active_keys(self) -> List[Recipient]:
        return [Recipient(r.key_id, r.public_key, r.device_name)
                for r in self._store.list_active()]

    def all_keys(self) -> List[KeySummary]:
        return [KeySummary(r.key_id, r.device_name, r.owner_email, r.is_active, r.created_at)
                for r in self._store.list_all()]

    def find_by_key_id(self, key_id: str) -> Optional[AuthorizedKey]:
        return self._store.get(key_id)

    # ── key administration payloads ───────────────────────────────────────────
    def register_payload(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """{publicKey, deviceName, ownerEmail?} -> {keyId, deviceName}"""
        request = parse_payload(RegisterKeyIn, payload)
        row = self.register(request.publicKey, request.deviceName, request.ownerEmail)
        return KeyOut(keyId=row.key_id, deviceName=row.device_name).model_dump()

    def revoke_payload(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """{keyId} -> {keyId, deviceName}"""
        request = parse_payload(RevokeKeyIn, payload)
        row = self.revoke(request.keyId)
        return KeyOut(keyId=row.key_id, deviceName=row.device_name).model_dump()

    def listing_payload(self) -> List[Dict[str, Any]]:
        return [KeySummaryOut(keyId=k.key_id, deviceName=k.device_name,
                              ownerEmail=k.owner_email, isActive=k.is_active,
                              createdAt=k.created_at).model_dump(mode="json")
                for k in self.all_keys()]
