"""Small helper to turn parsed command line options into a fieldcrypt request."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from fieldcrypt.core.exceptions import ConfigurationError
from fieldcrypt.core.models import DecryptRequest, EncryptRequest
from fieldcrypt.security.kdf import KdfParams


ENV_PASSWORD = "FIELDCRYPT_PASSWORD"
ENV_PASSPHRASE = "FIELDCRYPT_PASSPHRASE"
ENV_TAG_KEY = "FIELDCRYPT_TAG_KEY"


@dataclass
class CliContext:
    """Everything a command needs to run."""

    command: str
    request: Union[EncryptRequest, DecryptRequest]
    output: Optional[Path]


def _read_text(path: str) -> str:
    try:
        return Path(path).expanduser().read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc.strerror}") from exc


def _secret(value: Optional[str], env_name: str) -> Optional[str]:
    # Flags win over the environment so scripts can override a shell default.
    if value is not None:
        return value
    return os.getenv(env_name)


def build_context(args: argparse.Namespace, stdin_text: Optional[str] = None) -> CliContext:
    """
    Build the request for ``args.command`` (``encrypt`` or ``decrypt``).

    Secrets missing from the command line are taken from the environment:

    - ``FIELDCRYPT_PASSWORD`` for ``--password``
    - ``FIELDCRYPT_PASSPHRASE`` for ``--passphrase`` (private key unlock)
    - ``FIELDCRYPT_TAG_KEY`` for ``--tag-key``

    The document is read from ``--in`` or, when omitted, from ``stdin_text``.
    """
    if args.input:
        data = _read_text(args.input)
    elif stdin_text is not None:
        data = stdin_text
    else:
        raise ConfigurationError("no input document given")

    include: List[str] = args.fields or []
    exclude: List[str] = args.exclude or []
    password = _secret(args.password, ENV_PASSWORD)
    tag_key = _secret(args.tag_key, ENV_TAG_KEY)
    output = Path(args.output).expanduser() if args.output else None

    if args.command == "encrypt":
        public_keys = [_read_text(p) for p in args.recipients] if args.recipients else None
        kdf = KdfParams(
            time_cost=args.kdf_time,
            memory_cost=args.kdf_memory,
            parallelism=args.kdf_parallelism,
        )
        request = EncryptRequest(
            data=data,
            password=password,
            salt=args.salt,
            public_keys=public_keys,
            include_fields=include,
            exclude_fields=exclude,
            tag_key=tag_key,
            kdf=kdf,
            max_workers=args.workers,
        )
    else:
        private_key = _read_text(args.private_key) if args.private_key else None
        request = DecryptRequest(
            data=data,
            password=password,
            salt=args.salt,
            private_key=private_key,
            passphrase=_secret(args.passphrase, ENV_PASSPHRASE),
            include_fields=include,
            exclude_fields=exclude,
            tag_key=tag_key,
            kdf_limit=KdfParams(
                time_cost=args.kdf_max_time,
                memory_cost=args.kdf_max_memory,
                parallelism=args.kdf_max_parallelism,
            ),
            max_workers=args.workers,
        )

    return CliContext(command=args.command, request=request, output=output)
