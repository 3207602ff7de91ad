"""Request models and key-mode resolution for fieldcrypt operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from fieldcrypt.security.crypto import MAX_MEMORY_COST, MAX_RECIPIENTS
from fieldcrypt.security.kdf import DEFAULT_KDF_LIMIT, DEFAULT_KDF_PARAMS, KdfParams

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class SelectionMode(Enum):
    """How a path schema selects leaves."""

    INCLUDE = "include"  # encrypt only the listed paths
    EXCLUDE = "exclude"  # encrypt every leaf except the listed paths


@dataclass
class EncryptRequest:
    """Parameters of an :func:`fieldcrypt.encrypt` call.

    ``data`` is either JSON text or an already decoded value. Symmetric mode
    needs ``password`` and ``salt``; passing ``public_keys`` switches to
    public-key mode and ignores both. Exactly one of ``include_fields`` and
    ``exclude_fields`` must be non-empty.
    """

    data: Any
    password: Optional[str] = None
    salt: Optional[str] = ""
    public_keys: Optional[List[str]] = None
    include_fields: List[str] = field(default_factory=list)
    exclude_fields: List[str] = field(default_factory=list)
    tag_key: Optional[str] = None
    kdf: KdfParams = DEFAULT_KDF_PARAMS
    max_workers: Optional[int] = None


@dataclass
class DecryptRequest:
    """Parameters of a :func:`fieldcrypt.decrypt` call.

    Passing ``private_key`` switches to public-key mode; the key is unlocked
    with ``passphrase`` (or ``password`` when no passphrase is given).
    ``kdf_limit`` caps the Argon2id costs accepted from ciphertext headers.
    """

    data: Any
    password: Optional[str] = None
    salt: Optional[str] = ""
    private_key: Optional[str] = None
    passphrase: Optional[str] = None
    include_fields: List[str] = field(default_factory=list)
    exclude_fields: List[str] = field(default_factory=list)
    tag_key: Optional[str] = None
    kdf_limit: KdfParams = DEFAULT_KDF_LIMIT
    max_workers: Optional[int] = None


@dataclass(frozen=True)
class SymmetricMode:
    passphrase: str


@dataclass(frozen=True)
class AsymmetricEncryptMode:
    public_keys: Tuple[str, ...]


@dataclass(frozen=True)
class AsymmetricDecryptMode:
    private_key: str
    passphrase: str


KeyMode = Union[SymmetricMode, AsymmetricEncryptMode, AsymmetricDecryptMode]


def _require_str(name: str, value, allow_empty: bool = False) -> str:
    if value is None:
        raise ConfigurationError(f"{name} is required")
    if not isinstance(value, str):
        raise ConfigurationError(f"{name} must be a string")
    if not allow_empty and value == "":
        raise ConfigurationError(f"{name} must not be empty")
    return value


def _symmetric_mode(request: Union[EncryptRequest, DecryptRequest]) -> SymmetricMode:
    password = _require_str("password", request.password)
    salt = _require_str("salt", request.salt, allow_empty=True)
    # password and salt are concatenated without a separator; the cipher
    # stretches the result with Argon2id
    return SymmetricMode(passphrase=password + salt)


def resolve_key_mode(request: Union[EncryptRequest, DecryptRequest]) -> KeyMode:
    """Pick the key mode implied by which fields of ``request`` are set."""
    if isinstance(request, EncryptRequest):
        if request.public_keys is not None:
            keys = request.public_keys
            if isinstance(keys, str) or not isinstance(keys, (list, tuple)):
                raise ConfigurationError("public_keys must be a list of PEM strings")
            if not keys:
                raise ConfigurationError("public_keys must not be empty")
            if len(keys) > MAX_RECIPIENTS:
                raise ConfigurationError(f"at most {MAX_RECIPIENTS} public keys are supported")
            for key in keys:
                _require_str("public key", key)
            logger.debug("resolved public-key encryption for %d recipient(s)", len(keys))
            return AsymmetricEncryptMode(public_keys=tuple(keys))
        logger.debug("resolved password encryption")
        return _symmetric_mode(request)

    if request.private_key is not None:
        private_key = _require_str("private_key", request.private_key)
        passphrase = request.passphrase if request.passphrase is not None else request.password
        passphrase = _require_str("passphrase", passphrase, allow_empty=True)
        logger.debug("resolved private-key decryption")
        return AsymmetricDecryptMode(private_key=private_key, passphrase=passphrase)
    logger.debug("resolved password decryption")
    return _symmetric_mode(request)


def validate_kdf_params(params: KdfParams, name: str = "kdf") -> KdfParams:
    if not isinstance(params, KdfParams):
        raise ConfigurationError(f"{name} must be a KdfParams instance")
    if not 1 <= params.time_cost <= 255:
        raise ConfigurationError(f"{name} time_cost must be between 1 and 255")
    if not 1 <= params.parallelism <= 255:
        raise ConfigurationError(f"{name} parallelism must be between 1 and 255")
    if not 8 * params.parallelism <= params.memory_cost <= MAX_MEMORY_COST:
        raise ConfigurationError(
            f"{name} memory_cost must be between {8 * params.parallelism} and {MAX_MEMORY_COST} KiB"
        )
    if not 8 <= params.salt_len <= 255:
        raise ConfigurationError(f"{name} salt_len must be between 8 and 255")
    return params


def validate_max_workers(max_workers: Optional[int]) -> Optional[int]:
    if max_workers is None:
        return None
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        raise ConfigurationError("max_workers must be a positive integer")
    return max_workers
