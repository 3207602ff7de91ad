import os
from dataclasses import dataclass
from typing import Dict

from argon2.low_level import Type, hash_secret_raw


@dataclass(frozen=True)
class KdfParams:
    """Argon2id cost parameters used to stretch a symmetric passphrase."""

    time_cost: int = 3
    memory_cost: int = 65536
    parallelism: int = 1
    salt_len: int = 16


DEFAULT_KDF_PARAMS = KdfParams()

# highest costs accepted from a ciphertext header on decrypt
DEFAULT_KDF_LIMIT = KdfParams(time_cost=10, memory_cost=262144, parallelism=8)


def generate_salt(length: int = 16) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(password: bytes, salt: bytes, params: KdfParams = DEFAULT_KDF_PARAMS, key_len: int = 32) -> bytes:
    """
    Derive a content key from a passphrase using Argon2id.
    Returns raw derived key bytes.
    """
    if isinstance(password, str):
        password = password.encode("utf-8")

    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=key_len,
        type=Type.ID,
    )


def exceeds_limit(params: KdfParams, limit: KdfParams) -> bool:
    return (
        params.time_cost > limit.time_cost
        or params.memory_cost > limit.memory_cost
        or params.parallelism > limit.parallelism
    )


def kdf_params_to_dict(salt: bytes, params: KdfParams) -> Dict:
    return {
        "algo": "argon2id",
        "salt": salt.hex(),
        "time": params.time_cost,
        "memory": params.memory_cost,
        "parallelism": params.parallelism,
    }
