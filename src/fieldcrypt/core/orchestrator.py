"""Top-level ``encrypt`` / ``decrypt`` operations.

Both operations follow the same steps:

1. build and validate the request (field selection, key mode, KDF and worker
   options) before any cryptographic work happens;
2. normalize ``data``: JSON text is parsed, decoded values are checked to
   hold only JSON types;
3. prepare the cipher once per call (recipient keys parsed, private key
   unlocked, password key derived lazily and cached);
4. walk the document and transform every selected leaf;
5. hand the result back in the same representation the caller passed in.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, NamedTuple, Optional, Tuple, Union

from fieldcrypt.security.crypto import PasswordCipher, PrivateKeyCipher, RecipientCipher
from fieldcrypt.security.keys import load_public_key, unlock_private_key
from fieldcrypt.security.kdf import KdfParams

from .exceptions import ConfigurationError
from .models import (
    AsymmetricDecryptMode,
    AsymmetricEncryptMode,
    DecryptRequest,
    EncryptRequest,
    KeyMode,
    SelectionMode,
    SymmetricMode,
    resolve_key_mode,
    validate_kdf_params,
    validate_max_workers,
)
from .transformer import LeafDecryptor, LeafEncryptor
from .walker import Path, resolve_selection, walk


logger = logging.getLogger(__name__)

JSON_SEPARATORS = (",", ":")


def _build_request(cls, request, params):
    if request is not None and params:
        raise ConfigurationError("pass either a request object or keyword parameters, not both")
    if request is None:
        try:
            return cls(**params)
        except TypeError as exc:
            raise ConfigurationError(f"invalid parameters: {exc}") from exc
    if not isinstance(request, cls):
        raise ConfigurationError(f"request must be a {cls.__name__}")
    return request


def _check_json_value(document: Any) -> None:
    """Reject decoded input that would not survive a JSON round-trip."""
    stack = [(document, "$")]
    while stack:
        node, where = stack.pop()
        if isinstance(node, dict):
            for key, child in node.items():
                if not isinstance(key, str):
                    raise ConfigurationError(f"data has a non-string object key {key!r} at {where}")
                stack.append((child, f"{where}.{key}"))
        elif isinstance(node, list):
            for index, child in enumerate(node):
                stack.append((child, f"{where}.{index}"))
        elif node is not None and not isinstance(node, (str, int, float, bool)):
            raise ConfigurationError(f"data holds a {type(node).__name__} at {where}, which is not a JSON value")


def _load_document(data: Any) -> Tuple[Any, bool]:
    """Return (document, was_text)."""
    if isinstance(data, str):
        try:
            return json.loads(data), True
        except ValueError as exc:
            raise ConfigurationError("data is not valid JSON text") from exc
    _check_json_value(data)
    return data, False


def _dump_document(document: Any, as_text: bool) -> Any:
    if as_text:
        return json.dumps(document, ensure_ascii=False, separators=JSON_SEPARATORS)
    return document


class _Plan(NamedTuple):
    schema: List[Path]
    mode: SelectionMode
    key_mode: KeyMode
    kdf: KdfParams
    tag_key: Optional[str]
    max_workers: Optional[int]
    document: Any
    as_text: bool


def _validate(request: Union[EncryptRequest, DecryptRequest]) -> _Plan:
    schema, mode = resolve_selection(request.include_fields, request.exclude_fields)
    key_mode = resolve_key_mode(request)
    if isinstance(request, EncryptRequest):
        kdf = validate_kdf_params(request.kdf)
    else:
        kdf = validate_kdf_params(request.kdf_limit, name="kdf_limit")
    tag_key = _tag_key(request)
    max_workers = validate_max_workers(request.max_workers)
    document, as_text = _load_document(request.data)
    return _Plan(schema, mode, key_mode, kdf, tag_key, max_workers, document, as_text)


def _parse_public_keys(public_keys, max_workers: Optional[int]) -> List:
    if max_workers == 1 or len(public_keys) == 1:
        return [load_public_key(pem) for pem in public_keys]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(load_public_key, public_keys))


def _encrypting_cipher(key_mode: KeyMode, kdf: KdfParams, max_workers: Optional[int]):
    if isinstance(key_mode, AsymmetricEncryptMode):
        return RecipientCipher(_parse_public_keys(key_mode.public_keys, max_workers))
    return PasswordCipher(key_mode.passphrase, kdf)


def _decrypting_cipher(key_mode: KeyMode, kdf_limit: KdfParams):
    if isinstance(key_mode, AsymmetricDecryptMode):
        return PrivateKeyCipher(unlock_private_key(key_mode.private_key, key_mode.passphrase))
    # Argon2 parameters come from each ciphertext header, capped by kdf_limit
    return PasswordCipher(key_mode.passphrase, limit=kdf_limit)


def encrypt(request: Optional[EncryptRequest] = None, **params) -> Any:
    """Encrypt the selected leaves of a JSON document.

    Accepts an :class:`EncryptRequest` or the same fields as keyword
    arguments. JSON text in gives JSON text out; a decoded value in gives a
    new decoded value out. Every selected leaf is replaced by an envelope
    token ``_data:<base64>[;_hmac:<tag>]``.

    Raises:
        ConfigurationError: invalid, missing or conflicting parameters.
        KeyMaterialError: a recipient public key cannot be read.
    """
    request = _build_request(EncryptRequest, request, params)
    plan = _validate(request)

    cipher = _encrypting_cipher(plan.key_mode, plan.kdf, plan.max_workers)
    transform = LeafEncryptor(cipher, tag_key=plan.tag_key)
    result = walk(plan.document, plan.schema, transform, plan.mode, max_workers=plan.max_workers)
    logger.info("encrypted document (%s fields, %s key)", plan.mode.value, _mode_name(plan.key_mode))
    return _dump_document(result, plan.as_text)


def decrypt(request: Optional[DecryptRequest] = None, **params) -> Any:
    """Decrypt the selected leaves of a document produced by :func:`encrypt`.

    The field selection must match the one used to encrypt. When ``tag_key``
    is given every selected envelope must carry a matching integrity tag.

    Raises:
        ConfigurationError: invalid, missing or conflicting parameters.
        KeyMaterialError: the private key cannot be unlocked.
        FormatError: a selected value is not a well-formed envelope token.
        DecryptionError: wrong password, salt or key, corrupt ciphertext, or
            KDF costs in a ciphertext header above ``kdf_limit``.
        IntegrityError: an integrity tag does not match.
    """
    request = _build_request(DecryptRequest, request, params)
    plan = _validate(request)

    cipher = _decrypting_cipher(plan.key_mode, plan.kdf)
    transform = LeafDecryptor(cipher, tag_key=plan.tag_key)
    result = walk(plan.document, plan.schema, transform, plan.mode, max_workers=plan.max_workers)
    logger.info("decrypted document (%s fields, %s key)", plan.mode.value, _mode_name(plan.key_mode))
    return _dump_document(result, plan.as_text)


def _tag_key(request: Union[EncryptRequest, DecryptRequest]) -> Optional[str]:
    if request.tag_key is None:
        return None
    if not isinstance(request.tag_key, str) or request.tag_key == "":
        raise ConfigurationError("tag_key must be a non-empty string")
    return request.tag_key


def _mode_name(key_mode: KeyMode) -> str:
    return "password" if isinstance(key_mode, SymmetricMode) else "public"

