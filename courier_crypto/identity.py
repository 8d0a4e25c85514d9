"""
Identity
========
A party's one long-lived RSA key pair plus the key id derived from it.

Identity values are constructed explicitly and passed to the builder and
opener; nothing reads key material from module-level state.

load_or_generate() is the one-time boot step. It is detect-or-create:
the private key is published with an atomic hard link, so when two
processes race on first boot exactly one key pair wins and the loser
loads it instead of overwriting it.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import rsa

from .keyid import key_id as compute_key_id
from .primitives.rsa import RSAKeyWrapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    public_pem:  str
    private_key: rsa.RSAPrivateKey = field(repr=False)
    key_id:      str = ""

    def __post_init__(self):
        derived = compute_key_id(self.public_pem)
        if self.key_id and self.key_id != derived:
            raise ValueError("key_id does not match public key.")
        object.__setattr__(self, "key_id", derived)

    @classmethod
    def from_private_key(cls, private_key: rsa.RSAPrivateKey) -> "Identity":
        return cls(public_pem=RSAKeyWrapper.export_public_pem(private_key),
                   private_key=private_key)

    @classmethod
    def generate(cls, key_size: int = None) -> "Identity":
        return cls.from_private_key(RSAKeyWrapper.generate_keypair(key_size))

    @classmethod
    def load(cls, private_path: Path) -> "Identity":
        private_key = RSAKeyWrapper.load_private_pem(Path(private_path).read_bytes())
        return cls.from_private_key(private_key)

    @classmethod
    def load_or_generate(cls, private_path: Path, public_path: Path,
                         key_size: int = None) -> "Identity":
        private_path = Path(private_path)
        public_path  = Path(public_path)

        if private_path.exists():
            logger.info(f"Loading existing RSA key pair from {private_path}")
        else:
            logger.info(f"Generating new RSA-{key_size or RSAKeyWrapper.KEY_SIZE} key pair")
            private_key = RSAKeyWrapper.generate_keypair(key_size)
            if _publish_exclusive(private_path, RSAKeyWrapper.export_private_pem(private_key)):
                logger.info(f"RSA key pair generated and saved to {private_path}")
            else:
                logger.warning(f"Another process created {private_path} first; loading it")

        identity = cls.load(private_path)
        # The public file is always derivable from the private key.
        if not public_path.exists() or public_path.read_text() != identity.public_pem:
            _write_atomic(public_path, identity.public_pem.encode("ascii"))
        logger.info(f"Identity ready: keyId={identity.key_id}")
        return identity


def _publish_exclusive(path: Path, data: bytes) -> bool:
    """Write data to path only if path does not exist. Returns True if we created it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, 0o600)
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        return True
    finally:
        os.unlink(tmp)


def _write_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)
