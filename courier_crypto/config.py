"""
Configuration
=============
Settings come from COURIER_* environment variables, with defaults that
work for a single local receiver.

    COURIER_KEYS_DIR      directory holding the receiver's PEM key pair
    COURIER_KEY_NAME      file stem: <name>_private.pem / <name>_public.pem
    COURIER_RSA_KEY_SIZE  modulus for first-boot key generation
    COURIER_DB_URL        SQLAlchemy URL for the authorized-key registry
    COURIER_DEVICE_NAME   device label used when seeding the registry
    COURIER_OWNER_EMAIL   optional owner email used when seeding the registry
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .primitives.rsa import RSAKeyWrapper


@dataclass(frozen=True)
class CourierConfig:
    keys_dir:     Path = Path("keys")
    key_name:     str  = "receiver"
    rsa_key_size: int  = RSAKeyWrapper.KEY_SIZE
    db_url:       str  = "sqlite://"
    device_name:  str  = "receiver-primary"
    owner_email:  Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "keys_dir", Path(self.keys_dir))

    @property
    def private_key_path(self) -> Path:
        return self.keys_dir / f"{self.key_name}_private.pem"

    @property
    def public_key_path(self) -> Path:
        return self.keys_dir / f"{self.key_name}_public.pem"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CourierConfig":
        env = os.environ if environ is None else environ
        defaults = cls()
        key_size = env.get("COURIER_RSA_KEY_SIZE")
        return cls(
            keys_dir=Path(env.get("COURIER_KEYS_DIR", str(defaults.keys_dir))),
            key_name=env.get("COURIER_KEY_NAME", defaults.key_name),
            rsa_key_size=int(key_size) if key_size else defaults.rsa_key_size,
            db_url=env.get("COURIER_DB_URL", defaults.db_url),
            device_name=env.get("COURIER_DEVICE_NAME", defaults.device_name),
            owner_email=env.get("COURIER_OWNER_EMAIL") or defaults.owner_email,
        )
