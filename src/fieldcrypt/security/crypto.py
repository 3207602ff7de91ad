"""AEAD cipher primitive for single field values, with a compact binary header.

Header layout (binary, all big-endian):
- 4 bytes: magic b'FCX1'
- 1 byte: version (1)
- 1 byte: alg_id (1 = password / AES-GCM, 2 = public key / AES-GCM)

alg_id 1 (password):
- 1 byte time_cost, 4 bytes memory_cost, 1 byte parallelism (Argon2id)
- 1 byte: len_salt (L)
- L bytes: Argon2id salt

alg_id 2 (public key), one content key wrapped for every recipient:
- 1 byte: recipient count
- per recipient: 1 byte kind, 8 bytes key id,
  2 bytes len_ephemeral + ephemeral public key (empty for RSA),
  2 bytes len_wrapped + wrapped content key

Body: 12-byte nonce followed by the AES-256-GCM ciphertext. The whole header is
bound to the ciphertext as associated data.
"""

from __future__ import annotations

import io
import logging
import os
import struct
import threading
from typing import BinaryIO, Dict, List, Sequence, Tuple

from argon2.exceptions import Argon2Error
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, x25519
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.keywrap import InvalidUnwrap, aes_key_unwrap, aes_key_wrap

from fieldcrypt.core.exceptions import DecryptionError
from .kdf import (
    DEFAULT_KDF_LIMIT,
    DEFAULT_KDF_PARAMS,
    KdfParams,
    derive_key,
    exceeds_limit,
    generate_salt,
    kdf_params_to_dict,
)
from .keys import KIND_EC, KIND_RSA, KIND_X25519, KEY_ID_SIZE, PrivateKey, PublicKey, key_id, key_kind


logger = logging.getLogger(__name__)

MAGIC = b"FCX1"
VERSION = 1
ALG_ID_PASSWORD = 1
ALG_ID_PUBKEY = 2

NONCE_SIZE = 12
CEK_SIZE = 32
GCM_TAG_SIZE = 16
MAX_RECIPIENTS = 255
# upper bound for the memory_cost an encrypt call may request (KiB)
MAX_MEMORY_COST = 4 * 1024 * 1024

_OAEP = padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=None)


def generate_cek() -> bytes:
    return os.urandom(CEK_SIZE)


def _derive_kek(shared_secret: bytes, ephemeral: bytes, info: bytes = b"fieldcrypt-kek") -> bytes:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=info + ephemeral)
    return hkdf.derive(shared_secret)


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise DecryptionError("truncated ciphertext")
    return data


def _read_preamble(stream: BinaryIO, expected_alg: int) -> None:
    magic = _read_exact(stream, 4)
    if magic != MAGIC:
        raise DecryptionError("invalid ciphertext format (magic mismatch)")
    ver = ord(_read_exact(stream, 1))
    if ver != VERSION:
        raise DecryptionError("unsupported ciphertext version")
    alg = ord(_read_exact(stream, 1))
    if alg != expected_alg:
        if alg in (ALG_ID_PASSWORD, ALG_ID_PUBKEY):
            raise DecryptionError("ciphertext was encrypted in a different key mode")
        raise DecryptionError("unsupported algorithm")


def _seal(key: bytes, header: bytes, plaintext: bytes) -> bytes:
    nonce = os.urandom(NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext, header)
    return header + nonce + ct


def _open(key: bytes, header: bytes, stream: BinaryIO) -> bytes:
    nonce = _read_exact(stream, NONCE_SIZE)
    ct = stream.read()
    if len(ct) < GCM_TAG_SIZE:
        raise DecryptionError("truncated ciphertext")
    try:
        return AESGCM(key).decrypt(nonce, ct, header)
    except InvalidTag as exc:
        raise DecryptionError("unable to decrypt (wrong key or corrupt data)") from exc


class PasswordCipher:
    """
    Password-mode cipher bound to one passphrase for the duration of a call.

    The passphrase is stretched with Argon2id. Encryption uses one random KDF
    salt per cipher instance, so the key is derived once no matter how many
    fields are encrypted; decryption derives once per distinct salt and
    parameter set found in the headers. Header parameters above ``limit`` are
    rejected before any derivation. Safe to share between worker threads.
    """

    def __init__(
        self,
        passphrase: str,
        params: KdfParams = DEFAULT_KDF_PARAMS,
        limit: KdfParams = DEFAULT_KDF_LIMIT,
    ):
        self._passphrase = passphrase.encode("utf-8")
        self._params = params
        self._limit = limit
        self._salt: bytes | None = None
        self._keys: Dict[Tuple[bytes, KdfParams], bytes] = {}
        self._lock = threading.Lock()

    def _key_for(self, salt: bytes, params: KdfParams) -> bytes:
        cache_key = (salt, params)
        with self._lock:
            key = self._keys.get(cache_key)
            if key is None:
                key = derive_key(self._passphrase, salt, params)
                self._keys[cache_key] = key
                logger.debug("derived password key %s", kdf_params_to_dict(salt, params))
            return key

    def _encryption_salt(self) -> bytes:
        with self._lock:
            if self._salt is None:
                self._salt = generate_salt(self._params.salt_len)
            return self._salt

    def encrypt(self, plaintext: bytes) -> bytes:
        params = self._params
        salt = self._encryption_salt()
        key = self._key_for(salt, params)

        header = bytearray()
        header += MAGIC
        header += struct.pack("B", VERSION)
        header += struct.pack("B", ALG_ID_PASSWORD)
        header += struct.pack(">BIB", params.time_cost, params.memory_cost, params.parallelism)
        header += struct.pack("B", len(salt))
        header += salt
        return _seal(key, bytes(header), plaintext)

    def decrypt(self, blob: bytes) -> bytes:
        stream = io.BytesIO(blob)
        _read_preamble(stream, ALG_ID_PASSWORD)
        time_cost, memory_cost, parallelism = struct.unpack(">BIB", _read_exact(stream, 6))
        (salt_len,) = struct.unpack("B", _read_exact(stream, 1))
        salt = _read_exact(stream, salt_len)
        header = blob[: stream.tell()]

        params = KdfParams(time_cost, memory_cost, parallelism, salt_len)
        if exceeds_limit(params, self._limit):
            logger.warning("rejected ciphertext header with KDF costs %s", kdf_params_to_dict(salt, params))
            raise DecryptionError("KDF parameters in ciphertext header exceed the configured limit")
        try:
            key = self._key_for(salt, params)
        except Argon2Error as exc:
            raise DecryptionError("invalid KDF parameters in ciphertext header") from exc
        return _open(key, header, stream)


def _wrap_cek(public_key: PublicKey, cek: bytes) -> Tuple[int, bytes, bytes]:
    """Wrap ``cek`` for one recipient; returns (kind, ephemeral, wrapped)."""
    kind = key_kind(public_key)
    if kind == KIND_RSA:
        return kind, b"", public_key.encrypt(cek, _OAEP)

    if kind == KIND_X25519:
        eph_priv = x25519.X25519PrivateKey.generate()
        shared = eph_priv.exchange(public_key)
        ephemeral = eph_priv.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
    else:
        eph_priv = ec.generate_private_key(public_key.curve)
        shared = eph_priv.exchange(ec.ECDH(), public_key)
        ephemeral = eph_priv.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
    kek = _derive_kek(shared, ephemeral)
    return kind, ephemeral, aes_key_wrap(kek, cek)


class RecipientCipher:
    """Public-key mode encryption for one or more already parsed recipient keys.

    Every field gets a fresh content key which is wrapped for each recipient,
    so any one of the matching private keys can open the ciphertext.
    """

    def __init__(self, public_keys: Sequence[PublicKey]):
        if not public_keys:
            raise ValueError("at least one recipient public key is required")
        if len(public_keys) > MAX_RECIPIENTS:
            raise ValueError(f"at most {MAX_RECIPIENTS} recipients are supported")
        self._recipients = [(key, key_id(key)) for key in public_keys]

    def encrypt(self, plaintext: bytes) -> bytes:
        cek = generate_cek()

        header = bytearray()
        header += MAGIC
        header += struct.pack("B", VERSION)
        header += struct.pack("B", ALG_ID_PUBKEY)
        header += struct.pack("B", len(self._recipients))
        for public_key, kid in self._recipients:
            kind, ephemeral, wrapped = _wrap_cek(public_key, cek)
            header += struct.pack("B", kind)
            header += kid
            header += struct.pack(">H", len(ephemeral))
            header += ephemeral
            header += struct.pack(">H", len(wrapped))
            header += wrapped
        return _seal(cek, bytes(header), plaintext)


class PrivateKeyCipher:
    """Public-key mode decryption with a single unlocked private key."""

    def __init__(self, private_key: PrivateKey):
        self._key = private_key
        self._kind = key_kind(private_key)
        self._key_id = key_id(private_key.public_key())

    def _unwrap_cek(self, ephemeral: bytes, wrapped: bytes) -> bytes:
        try:
            if self._kind == KIND_RSA:
                return self._key.decrypt(wrapped, _OAEP)
            if self._kind == KIND_X25519:
                peer = x25519.X25519PublicKey.from_public_bytes(ephemeral)
                shared = self._key.exchange(peer)
            else:
                peer = ec.EllipticCurvePublicKey.from_encoded_point(self._key.curve, ephemeral)
                shared = self._key.exchange(ec.ECDH(), peer)
            return aes_key_unwrap(_derive_kek(shared, ephemeral), wrapped)
        except (ValueError, InvalidUnwrap) as exc:
            raise DecryptionError("unable to unwrap content key") from exc

    def decrypt(self, blob: bytes) -> bytes:
        stream = io.BytesIO(blob)
        _read_preamble(stream, ALG_ID_PUBKEY)
        (count,) = struct.unpack("B", _read_exact(stream, 1))

        entries: List[Tuple[int, bytes, bytes, bytes]] = []
        for _ in range(count):
            (kind,) = struct.unpack("B", _read_exact(stream, 1))
            kid = _read_exact(stream, KEY_ID_SIZE)
            (eph_len,) = struct.unpack(">H", _read_exact(stream, 2))
            ephemeral = _read_exact(stream, eph_len)
            (wrapped_len,) = struct.unpack(">H", _read_exact(stream, 2))
            wrapped = _read_exact(stream, wrapped_len)
            entries.append((kind, kid, ephemeral, wrapped))
        header = blob[: stream.tell()]

        for kind, kid, ephemeral, wrapped in entries:
            if kind == self._kind and kid == self._key_id:
                cek = self._unwrap_cek(ephemeral, wrapped)
                return _open(cek, header, stream)

        raise DecryptionError("no recipient entry matches the private key")
