"""
Wire models
===========
pydantic models for the JSON payloads that cross the transport boundary.

Binary fields are decoded while validating: base64 for ciphertext and
wrapped keys, hex for nonce and tag. A model that validates is therefore
ready to be mapped onto an Envelope without further checks.
"""

import base64
import binascii
from datetime import datetime
from typing import Annotated, Any, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, ValidationError, field_validator

from .errors import PayloadError
from .primitives.hasher import DIGEST_HEX_LENGTH


def _decode_b64(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError("must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("is not valid base64") from exc


def _decode_hex(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError("must be a hex string")
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError("is not valid hex") from exc


B64Bytes = Annotated[bytes, BeforeValidator(_decode_b64)]
HexBytes = Annotated[bytes, BeforeValidator(_decode_hex)]
NonBlank = Annotated[str, Field(min_length=1)]


# ---------- Envelopes ----------
class WrappedKeyIn(BaseModel):
    keyId: NonBlank
    wrappedKey: B64Bytes


class EnvelopeIn(BaseModel):
    ciphertext: B64Bytes
    wrappedKeys: Union[B64Bytes, Annotated[List[WrappedKeyIn], Field(min_length=1)]]
    nonce: HexBytes
    authTag: HexBytes
    contentDigest: str = Field(pattern=rf"^[0-9a-fA-F]{{{DIGEST_HEX_LENGTH}}}$")

    @field_validator("wrappedKeys")
    @classmethod
    def unique_key_ids(cls, value):
        if isinstance(value, list):
            ids = [w.keyId for w in value]
            if len(set(ids)) != len(ids):
                raise ValueError("duplicate keyId in wrapped keys")
        return value


class SubmitEnvelopeIn(EnvelopeIn):
    caseName: NonBlank
    fileName: NonBlank

    @field_validator("caseName", "fileName")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


# ---------- Key administration ----------
class RegisterKeyIn(BaseModel):
    publicKey: NonBlank
    deviceName: NonBlank
    ownerEmail: Optional[EmailStr] = None


class RevokeKeyIn(BaseModel):
    keyId: NonBlank


class KeyOut(BaseModel):
    keyId: str
    deviceName: str


class KeySummaryOut(BaseModel):
    keyId: str
    deviceName: str
    ownerEmail: Optional[str] = None
    isActive: bool
    createdAt: datetime


def validation_summary(exc: ValidationError) -> str:
    """One-line description of a ValidationError, field paths first."""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
        for err in exc.errors()
    )


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: Type[ModelT], payload: Any,
                  error: Type[PayloadError] = PayloadError) -> ModelT:
    """Validate a wire payload, raising `error` (a PayloadError) on any problem."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise error(validation_summary(exc)) from exc
