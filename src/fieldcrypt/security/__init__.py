"""Security helpers: KDF, key handling and field cipher primitives for fieldcrypt.

This package provides:
- Argon2id-based passphrase stretching
- PEM public key parsing and passphrase-protected private key unlock
- AEAD (AES-GCM) field encryption in password and multi-recipient modes
"""

from .kdf import DEFAULT_KDF_LIMIT, KdfParams, generate_salt, derive_key
from .keys import load_public_key, unlock_private_key
from .crypto import PasswordCipher, RecipientCipher, PrivateKeyCipher

__all__ = [
    "DEFAULT_KDF_LIMIT",
    "KdfParams",
    "generate_salt",
    "derive_key",
    "load_public_key",
    "unlock_private_key",
    "PasswordCipher",
    "RecipientCipher",
    "PrivateKeyCipher",
]
