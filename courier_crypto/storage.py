"""
Storage
=======
Durable rows for the authorized-key registry and for received cases.

Registry stores share one interface:
  MemoryKeyStore  thread-locked dict, for tests and single-process use
  SQLKeyStore     SQLAlchemy table with a UNIQUE key_id column

Both raise DuplicateKeyError when an insert loses the race for a key_id, so
the registry can take the conflict/reactivation path instead of creating a
second row for the same key material. Rows are never deleted.

Case stores keep the envelope exactly as received, ciphertext only:
  MemoryCaseStore in-process
  SQLCaseStore    `cases` table next to `authorized_keys` on the same engine
"""

from __future__ import annotations

import base64
import itertools
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import (Boolean, Column, DateTime, Integer, LargeBinary, String, Text,
                        create_engine)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .envelope import Envelope
from .errors import DuplicateKeyError, NotFoundError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops the offset; rows are always written in UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def make_engine(db_url: str = "sqlite://"):
    kwargs = {}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, or each session would see an empty database
        kwargs = {"poolclass": StaticPool,
                  "connect_args": {"check_same_thread": False}}
    return create_engine(db_url, future=True, **kwargs)


@dataclass(frozen=True)
class AuthorizedKey:
    """One registry row. key_id is a pure function of public_key."""

    key_id:      str
    public_key:  str = field(repr=False)
    device_name: str
    owner_email: Optional[str] = None
    is_active:   bool = True
    created_at:  datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class CaseRecord:
    id:          int
    case_name:   str
    file_name:   str
    envelope:    Envelope = field(repr=False)
    received_at: datetime


class KeyStore(ABC):
    """Interface every registry store implements."""

    @abstractmethod
    def get(self, key_id: str) -> Optional[AuthorizedKey]:
        ...

    @abstractmethod
    def insert(self, row: AuthorizedKey) -> AuthorizedKey:
        """Create a row; DuplicateKeyError if key_id already exists."""

    @abstractmethod
    def update(self, key_id: str, **changes) -> AuthorizedKey:
        ...

    @abstractmethod
    def list_active(self) -> List[AuthorizedKey]:
        ...

    @abstractmethod
    def list_all(self) -> List[AuthorizedKey]:
        """Every row, newest first."""


class CaseStore(ABC):

    @abstractmethod
    def create(self, case_name: str, file_name: str, envelope: Envelope) -> CaseRecord:
        ...

    @abstractmethod
    def find_all(self) -> List[CaseRecord]:
        """Newest first."""

    @abstractmethod
    def find_one(self, case_id: int) -> Optional[CaseRecord]:
        ...


# ── In-memory ─────────────────────────────────────────────────────────────────
class MemoryKeyStore(KeyStore):

    def __init__(self):
        self._rows: Dict[str, AuthorizedKey] = {}
        self._lock = threading.RLock()

    def get(self, key_id):
        with self._lock:
            return self._rows.get(key_id)

    def insert(self, row):
        with self._lock:
            if row.key_id in self._rows:
                raise DuplicateKeyError(row.key_id)
            self._rows[row.key_id] = row
            return row

    def update(self, key_id, **changes):
        with self._lock:
            row = self._rows.get(key_id)
            if row is None:
                raise NotFoundError(key_id)
            row = replace(row, **changes)
            self._rows[key_id] = row
            return row

    def list_active(self):
        with self._lock:
            return [r for r in self._rows.values() if r.is_active]

    def list_all(self):
        with self._lock:
            # dicts keep insertion order; reverse it for newest first
            return list(reversed(list(self._rows.values())))


class MemoryCaseStore(CaseStore):

    def __init__(self):
        self._cases: Dict[int, CaseRecord] = {}
        self._ids  = itertools.count(1)
        self._lock = threading.RLock()

    def create(self, case_name, file_name, envelope):
        with self._lock:
            record = CaseRecord(next(self._ids), case_name, file_name, envelope, utcnow())
            self._cases[record.id] = record
            return record

    def find_all(self):
        with self._lock:
            return sorted(self._cases.values(),
                          key=lambda c: (c.received_at, c.id), reverse=True)

    def find_one(self, case_id):
        with self._lock:
            return self._cases.get(case_id)


# ── SQLAlchemy ────────────────────────────────────────────────────────────────
Base = declarative_base()


class AuthorizedKeyRow(Base):
    __tablename__ = "authorized_keys"
    id          = Column(Integer, primary_key=True, autoincrement=True)
    key_id      = Column(String(64), unique=True, nullable=False, index=True)
    public_key  = Column(Text, nullable=False)
    device_name = Column(String(255), nullable=False)
    owner_email = Column(String(255), nullable=True)
    is_active   = Column(Boolean, nullable=False, default=True)
    created_at  = Column(DateTime(timezone=True), nullable=False)

    def to_key(self) -> AuthorizedKey:
        return AuthorizedKey(
            key_id=self.key_id,
            public_key=self.public_key,
            device_name=self.device_name,
            owner_email=self.owner_email,
            is_active=self.is_active,
            created_at=_as_utc(self.created_at),
        )


class CaseRow(Base):
    __tablename__ = "cases"
    id             = Column(Integer, primary_key=True, autoincrement=True)
    case_name      = Column(String(255), nullable=False)
    file_name      = Column(String(255), nullable=False)
    ciphertext     = Column(LargeBinary, nullable=False)
    wrapped_keys   = Column(Text, nullable=False)
    nonce          = Column(String(64), nullable=False)
    auth_tag       = Column(String(64), nullable=False)
    content_digest = Column(String(64), nullable=False)
    received_at    = Column(DateTime(timezone=True), nullable=False, index=True)

    def to_record(self) -> CaseRecord:
        # the stored row goes back through the wire codec, which picks the key shape
        envelope = Envelope.from_wire({
            "ciphertext":    base64.b64encode(self.ciphertext).decode("ascii"),
            "wrappedKeys":   json.loads(self.wrapped_keys),
            "nonce":         self.nonce,
            "authTag":       self.auth_tag,
            "contentDigest": self.content_digest,
        })
        return CaseRecord(self.id, self.case_name, self.file_name, envelope,
                          _as_utc(self.received_at))


class _SQLStore:

    def __init__(self, db_url: str = "sqlite://", engine=None):
        self.engine = engine if engine is not None else make_engine(db_url)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(bind=self.engine)


class SQLKeyStore(_SQLStore, KeyStore):

    def get(self, key_id):
        with self._sessions() as session:
            row = session.query(AuthorizedKeyRow).filter_by(key_id=key_id).one_or_none()
            return row.to_key() if row else None

    def insert(self, row):
        item = AuthorizedKeyRow(
            key_id=row.key_id,
            public_key=row.public_key,
            device_name=row.device_name,
            owner_email=row.owner_email,
            is_active=row.is_active,
            created_at=row.created_at,
        )
        with self._sessions() as session:
            session.add(item)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(row.key_id) from exc
            return item.to_key()

    def update(self, key_id, **changes):
        with self._sessions() as session:
            item = session.query(AuthorizedKeyRow).filter_by(key_id=key_id).one_or_none()
            if item is None:
                raise NotFoundError(key_id)
            for name, value in changes.items():
                setattr(item, name, value)
            session.commit()
            return item.to_key()

    def list_active(self):
        with self._sessions() as session:
            rows = (session.query(AuthorizedKeyRow)
                    .filter_by(is_active=True)
                    .order_by(AuthorizedKeyRow.id)
                    .all())
            return [r.to_key() for r in rows]

    def list_all(self):
        with self._sessions() as session:
            rows = (session.query(AuthorizedKeyRow)
                    .order_by(AuthorizedKeyRow.created_at.desc(), AuthorizedKeyRow.id.desc())
                    .all())
            return [r.to_key() for r in rows]


class SQLCaseStore(_SQLStore, CaseStore):

    def create(self, case_name, file_name, envelope):
        wire = envelope.to_wire()
        item = CaseRow(
            case_name=case_name,
            file_name=file_name,
            ciphertext=envelope.ciphertext,
            wrapped_keys=json.dumps(wire["wrappedKeys"]),
            nonce=wire["nonce"],
            auth_tag=wire["authTag"],
            content_digest=envelope.content_digest,
            received_at=utcnow(),
        )
        with self._sessions() as session:
            session.add(item)
            session.commit()
            return CaseRecord(item.id, case_name, file_name, envelope,
                              _as_utc(item.received_at))

    def find_all(self):
        with self._sessions() as session:
            rows = (session.query(CaseRow)
                    .order_by(CaseRow.received_at.desc(), CaseRow.id.desc())
                    .all())
            return [r.to_record() for r in rows]

    def find_one(self, case_id):
        with self._sessions() as session:
            row = session.get(CaseRow, case_id)
            return row.to_record() if row else None
