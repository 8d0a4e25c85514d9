from . import hasher
from .aes import AESCipher, SessionKeyMaterial
from .rsa import RSAKeyWrapper

__all__ = ["hasher", "AESCipher", "SessionKeyMaterial", "RSAKeyWrapper"]
