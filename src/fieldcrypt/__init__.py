"""fieldcrypt: selective field-level encryption of JSON documents.

Only the leaves picked by a path schema are encrypted; every other value keeps
its place, type and content. Usage::

    import fieldcrypt

    sealed = fieldcrypt.encrypt(
        data=document,
        password="thats my kung fu",
        include_fields=["Account.Order.$.OrderID"],
    )
    opened = fieldcrypt.decrypt(
        data=sealed,
        password="thats my kung fu",
        include_fields=["Account.Order.$.OrderID"],
    )
"""

from fieldcrypt.core.exceptions import (
    ConfigurationError,
    DecryptionError,
    FieldCryptError,
    FormatError,
    IntegrityError,
    KeyMaterialError,
)
from fieldcrypt.core.models import DecryptRequest, EncryptRequest, SelectionMode
from fieldcrypt.core.orchestrator import decrypt, encrypt
from fieldcrypt.core.walker import walk
from fieldcrypt.security.kdf import KdfParams

__version__ = "0.1.0"
__all__ = [
    "encrypt",
    "decrypt",
    "walk",
    "EncryptRequest",
    "DecryptRequest",
    "SelectionMode",
    "KdfParams",
    "FieldCryptError",
    "ConfigurationError",
    "FormatError",
    "KeyMaterialError",
    "DecryptionError",
    "IntegrityError",
]
