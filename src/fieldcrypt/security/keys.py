"""PEM key handling for the public-key mode.

Recipient public keys are SubjectPublicKeyInfo PEM blocks; private keys are
PKCS#8 PEM blocks protected by a passphrase. Supported key types are RSA,
X25519 and NIST elliptic curves. Signing-only types (Ed25519, DSA, ...) are
rejected because they cannot be used to wrap a content key.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa, x25519

from fieldcrypt.core.exceptions import KeyMaterialError


logger = logging.getLogger(__name__)

KEY_ID_SIZE = 8

KIND_RSA = 1
KIND_X25519 = 2
KIND_EC = 3

PublicKey = Union[rsa.RSAPublicKey, x25519.X25519PublicKey, ec.EllipticCurvePublicKey]
PrivateKey = Union[rsa.RSAPrivateKey, x25519.X25519PrivateKey, ec.EllipticCurvePrivateKey]


def key_kind(key) -> int:
    """Return the recipient kind id for a public or private key object."""
    if isinstance(key, (rsa.RSAPublicKey, rsa.RSAPrivateKey)):
        return KIND_RSA
    if isinstance(key, (x25519.X25519PublicKey, x25519.X25519PrivateKey)):
        return KIND_X25519
    if isinstance(key, (ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey)):
        return KIND_EC
    raise KeyMaterialError(f"unsupported key type: {type(key).__name__}")


def key_id(public_key: PublicKey) -> bytes:
    """Short fingerprint used to find a recipient's entry in a ciphertext header."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(der).digest()[:KEY_ID_SIZE]


def load_public_key(pem: str) -> PublicKey:
    """Parse an armored recipient public key."""
    try:
        key = serialization.load_pem_public_key(pem.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError("unable to read public key") from exc
    key_kind(key)
    logger.debug("loaded %s public key %s", type(key).__name__, key_id(key).hex())
    return key


def unlock_private_key(pem: str, passphrase: str) -> PrivateKey:
    """Read an armored private key and decrypt it with ``passphrase``.

    Raises :class:`KeyMaterialError` when the passphrase is wrong, the key is
    not passphrase protected or the key cannot be read at all.
    """
    try:
        key = serialization.load_pem_private_key(
            pem.encode("utf-8"), password=passphrase.encode("utf-8")
        )
    except TypeError as exc:
        # cryptography raises TypeError when a password is given for a plain key
        raise KeyMaterialError("private key is not protected by a passphrase") from exc
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError("unable to unlock private key (bad passphrase or corrupt key)") from exc
    key_kind(key)
    logger.debug("unlocked %s private key %s", type(key).__name__, key_id(key.public_key()).hex())
    return key
