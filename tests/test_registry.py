"""
courier_crypto — authorized key registry tests (memory + SQLAlchemy stores)
"""

import pytest

from courier_crypto.builder   import Recipient
from courier_crypto.errors    import (ConflictError, DuplicateKeyError,
                                      InvalidPublicKeyError, NotFoundError, PayloadError)
from courier_crypto.registry  import KeyRegistry
from courier_crypto.storage   import AuthorizedKey, MemoryKeyStore, SQLKeyStore


@pytest.fixture(params=["memory", "sqlite-memory", "sqlite-file"])
def registry(request, tmp_path):
    if request.param == "memory":
        return KeyRegistry(MemoryKeyStore())
    if request.param == "sqlite-memory":
        return KeyRegistry(SQLKeyStore("sqlite://"))
    return KeyRegistry(SQLKeyStore(f"sqlite:///{tmp_path / 'registry.db'}"))


# ── register ──────────────────────────────────────────────────────────────────
def test_register_creates_active_row(registry, court):
    row = registry.register(court.public_pem, "court-1", "clerk@court.example")
    assert row.key_id == court.key_id
    assert row.is_active
    assert row.device_name == "court-1"
    assert row.owner_email == "clerk@court.example"
    assert row.created_at.tzinfo is not None

def test_register_twice_conflicts(registry, court):
    registry.register(court.public_pem, "court-1")
    with pytest.raises(ConflictError) as exc:
        registry.register(court.public_pem, "court-2")
    assert exc.value.key_id == court.key_id

def test_register_rejects_invalid_key(registry):
    with pytest.raises(InvalidPublicKeyError):
        registry.register("not a key", "laptop")

def test_register_requires_device_name(registry, court):
    with pytest.raises(ValueError):
        registry.register(court.public_pem, "  ")

# ── revoke ────────────────────────────────────────────────────────────────────
def test_revoke_unknown(registry):
    with pytest.raises(NotFoundError):
        registry.revoke("0123456789abcdef")

def test_revoke_is_idempotent(registry, court):
    registry.register(court.public_pem, "court-1")
    first = registry.revoke(court.key_id)
    second = registry.revoke(court.key_id)
    assert first.is_active is False and second.is_active is False
    assert first == second
    assert registry.active_keys() == []

def test_reregister_revoked_reactivates_same_row(registry, court):
    original = registry.register(court.public_pem, "court-1", "a@court.example")
    registry.revoke(court.key_id)
    again = registry.register(court.public_pem, "court-1-replacement", None)
    assert again.key_id == original.key_id
    assert again.is_active
    assert again.device_name == "court-1-replacement"
    assert again.owner_email is None
    assert again.created_at == original.created_at
    assert len(registry.all_keys()) == 1

# ── listing ───────────────────────────────────────────────────────────────────
def test_active_keys_are_recipients(registry, court, alice, bob):
    registry.register(court.public_pem, "court-1")
    registry.register(alice.public_pem, "alice-laptop")
    registry.register(bob.public_pem, "bob-phone")
    registry.revoke(bob.key_id)
    active = registry.active_keys()
    assert all(isinstance(r, Recipient) for r in active)
    assert {r.key_id for r in active} == {court.key_id, alice.key_id}
    by_id = {r.key_id: r for r in active}
    assert by_id[alice.key_id].public_key == alice.public_pem
    assert by_id[alice.key_id].device_name == "alice-laptop"

def test_all_keys_hides_public_key_and_is_newest_first(registry, court, alice):
    registry.register(court.public_pem, "court-1")
    registry.register(alice.public_pem, "alice-laptop")
    registry.revoke(court.key_id)
    listing = registry.all_keys()
    assert [k.key_id for k in listing] == [alice.key_id, court.key_id]
    assert [k.is_active for k in listing] == [True, False]
    for summary in listing:
        assert not hasattr(summary, "public_key")
        assert "BEGIN PUBLIC KEY" not in repr(summary)

def test_find_by_key_id(registry, court):
    assert registry.find_by_key_id(court.key_id) is None
    registry.register(court.public_pem, "court-1")
    row = registry.find_by_key_id(court.key_id)
    assert row.public_key == court.public_pem

# ── administration payloads ───────────────────────────────────────────────────
def test_register_payload_returns_key_id_and_device(registry, court):
    body = registry.register_payload({"publicKey": court.public_pem, "deviceName": "court-1",
                                      "ownerEmail": "clerk@tribunal.org"})
    assert body == {"keyId": court.key_id, "deviceName": "court-1"}
    assert registry.find_by_key_id(court.key_id).owner_email == "clerk@tribunal.org"

@pytest.mark.parametrize("payload", [
    {"deviceName": "court-1"},
    {"publicKey": "PEM", "deviceName": ""},
    {"publicKey": "PEM", "deviceName": "court-1", "ownerEmail": "not-an-email"},
    "publicKey=PEM",
], ids=["no-key", "blank-device", "bad-email", "not-a-mapping"])
def test_register_payload_rejects_malformed(registry, payload):
    with pytest.raises(PayloadError):
        registry.register_payload(payload)
    assert registry.all_keys() == []

def test_revoke_payload(registry, court):
    registry.register(court.public_pem, "court-1")
    assert registry.revoke_payload({"keyId": court.key_id}) == {"keyId": court.key_id,
                                                                "deviceName": "court-1"}
    assert registry.active_keys() == []
    with pytest.raises(PayloadError):
        registry.revoke_payload({})
    with pytest.raises(NotFoundError):
        registry.revoke_payload({"keyId": "0000000000000000"})

def test_listing_payload_is_json_ready(registry, court):
    registry.register(court.public_pem, "court-1")
    [entry] = registry.listing_payload()
    assert set(entry) == {"keyId", "deviceName", "ownerEmail", "isActive", "createdAt"}
    assert entry["isActive"] is True and entry["ownerEmail"] is None
    assert isinstance(entry["createdAt"], str)

# ── seed ──────────────────────────────────────────────────────────────────────
def test_ensure_registered(registry, court):
    row = registry.ensure_registered(court.public_pem, "court-primary")
    assert row.is_active
    assert registry.ensure_registered(court.public_pem, "ignored").device_name == "court-primary"
    registry.revoke(court.key_id)
    assert registry.ensure_registered(court.public_pem, "court-primary").is_active

# ── concurrency ───────────────────────────────────────────────────────────────
class RacingStore(MemoryKeyStore):
    """Pretends another writer created the row between our read and our insert."""

    def __init__(self, winner):
        super().__init__()
        self._winner = winner
        self._hidden = True

    def get(self, key_id):
        if self._hidden:
            self._hidden = False
            return None
        return super().get(key_id)

    def insert(self, row):
        if self._winner is not None:
            super().insert(self._winner)
            self._winner = None
        return super().insert(row)


def test_lost_create_race_against_active_row_conflicts(court):
    winner = AuthorizedKey(court.key_id, court.public_pem, "other-process")
    registry = KeyRegistry(RacingStore(winner))
    with pytest.raises(ConflictError):
        registry.register(court.public_pem, "court-1")
    assert len(registry.all_keys()) == 1

def test_lost_create_race_against_revoked_row_reactivates(court):
    winner = AuthorizedKey(court.key_id, court.public_pem, "other-process", is_active=False)
    registry = KeyRegistry(RacingStore(winner))
    row = registry.register(court.public_pem, "court-1")
    assert row.is_active and row.device_name == "court-1"
    assert len(registry.all_keys()) == 1

@pytest.mark.parametrize("store_factory", [MemoryKeyStore, lambda: SQLKeyStore("sqlite://")],
                         ids=["memory", "sqlite"])
def test_store_enforces_unique_key_id(court, store_factory):
    store = store_factory()
    store.insert(AuthorizedKey(court.key_id, court.public_pem, "a"))
    with pytest.raises(DuplicateKeyError):
        store.insert(AuthorizedKey(court.key_id, court.public_pem, "b"))
