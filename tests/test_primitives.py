"""
courier_crypto — primitive tests (hasher, AES-256-GCM, RSA-OAEP, key ids)
"""

import hashlib

import pytest

from courier_crypto.errors      import AuthenticationError, InvalidPublicKeyError, UnwrapError
from courier_crypto.keyid       import key_id, KEY_ID_LENGTH
from courier_crypto.primitives  import hasher, AESCipher, RSAKeyWrapper

MSG = b"Expediente 2024-118: confidential evidence bundle."

# ── Hasher ────────────────────────────────────────────────────────────────────
def test_digest_is_sha256_hex():
    assert hasher.digest(MSG) == hashlib.sha256(MSG).hexdigest()
    assert len(hasher.digest(b"")) == 64

def test_digest_rejects_text():
    with pytest.raises(TypeError):
        hasher.digest("not bytes")

def test_verify_accepts_uppercase_and_rejects_other():
    d = hasher.digest(MSG)
    assert hasher.verify(MSG, d.upper())
    assert not hasher.verify(MSG, hasher.digest(b"other"))
    assert not hasher.verify(MSG, None)

def test_verify_non_ascii_expected_is_mismatch():
    assert hasher.verify(MSG, "\u00e9" * 64) is False
    assert hasher.verify(MSG, "") is False

# ── AES-256-GCM ───────────────────────────────────────────────────────────────
def test_session_keys_are_fresh():
    a = AESCipher.generate_session_key()
    b = AESCipher.generate_session_key()
    assert len(a.key) == 32 and len(a.nonce) == 12
    assert a.key != b.key and a.nonce != b.nonce
    assert a.key.hex() not in repr(a)

def test_aes_roundtrip_detached_tag():
    s = AESCipher.generate_session_key()
    ct, tag = AESCipher.encrypt(MSG, s.key, s.nonce)
    assert len(tag) == 16 and len(ct) == len(MSG)
    assert AESCipher.decrypt(ct, s.key, s.nonce, tag) == MSG

@pytest.mark.parametrize("part", ["ciphertext", "tag", "nonce"])
def test_aes_tamper_detected(part):
    s = AESCipher.generate_session_key()
    ct, tag = AESCipher.encrypt(MSG, s.key, s.nonce)
    fields = {"ciphertext": bytearray(ct), "tag": bytearray(tag), "nonce": bytearray(s.nonce)}
    fields[part][0] ^= 0x01
    with pytest.raises(AuthenticationError):
        AESCipher.decrypt(bytes(fields["ciphertext"]), s.key,
                          bytes(fields["nonce"]), bytes(fields["tag"]))

def test_aes_wrong_length_tag_is_authentication_error():
    s = AESCipher.generate_session_key()
    ct, tag = AESCipher.encrypt(MSG, s.key, s.nonce)
    with pytest.raises(AuthenticationError):
        AESCipher.decrypt(ct, s.key, s.nonce, tag[:-1])

def test_aes_rejects_bad_key_length_on_encrypt():
    with pytest.raises(ValueError):
        AESCipher.encrypt(MSG, b"short", b"\x00" * 12)

# ── RSA-OAEP wrapping ─────────────────────────────────────────────────────────
def test_wrap_unwrap_roundtrip(court):
    s = AESCipher.generate_session_key()
    wrapped = RSAKeyWrapper.wrap(s.key, court.public_pem)
    assert wrapped != s.key
    assert RSAKeyWrapper.unwrap(wrapped, court.private_key) == s.key

def test_wrap_is_randomized(court):
    key = b"k" * 32
    assert RSAKeyWrapper.wrap(key, court.public_pem) != RSAKeyWrapper.wrap(key, court.public_pem)

def test_unwrap_with_wrong_key_fails(court, alice):
    wrapped = RSAKeyWrapper.wrap(b"k" * 32, court.public_pem)
    with pytest.raises(UnwrapError):
        RSAKeyWrapper.unwrap(wrapped, alice.private_key)

def test_unwrap_malformed_fails(court):
    with pytest.raises(UnwrapError):
        RSAKeyWrapper.unwrap(b"\x00" * 17, court.private_key)
    with pytest.raises(UnwrapError):
        RSAKeyWrapper.unwrap(b"\x00" * 256, court.private_key)

def test_pem_export_import(court):
    priv = RSAKeyWrapper.export_private_pem(court.private_key)
    loaded = RSAKeyWrapper.load_private_pem(priv)
    assert RSAKeyWrapper.export_public_pem(loaded) == court.public_pem

def test_load_public_pem_rejects_garbage():
    with pytest.raises(InvalidPublicKeyError):
        RSAKeyWrapper.load_public_pem("-----BEGIN PUBLIC KEY-----\nnope\n-----END PUBLIC KEY-----\n")

def test_generate_refuses_weak_modulus():
    with pytest.raises(ValueError):
        RSAKeyWrapper.generate_keypair(1024)

# ── Key ids ───────────────────────────────────────────────────────────────────
def test_key_id_is_truncated_sha256_of_pem(court):
    expected = hashlib.sha256(court.public_pem.encode("utf-8")).hexdigest()[:KEY_ID_LENGTH]
    assert key_id(court.public_pem) == expected
    assert key_id(court.public_pem.encode("utf-8")) == expected
    assert court.key_id == expected

def test_key_id_fixed_vector():
    # pinned: a change to encoding or truncation must break this
    pem = "-----BEGIN PUBLIC KEY-----\nABC\n-----END PUBLIC KEY-----\n"
    assert key_id(pem) == "88e826502ff047d6"
    assert key_id(pem.encode("utf-8")) == "88e826502ff047d6"

def test_key_ids_distinct(court, alice, bob):
    ids = {court.key_id, alice.key_id, bob.key_id}
    assert len(ids) == 3
    assert all(len(i) == KEY_ID_LENGTH for i in ids)
