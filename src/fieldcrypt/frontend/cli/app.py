"""
Command line front end for fieldcrypt.

Usage:
  fieldcrypt encrypt --field Account.Order.$.OrderID --in doc.json --out doc.enc.json
  fieldcrypt encrypt --exclude Account.Name --recipient alice.pub.pem --recipient bob.pub.pem
  fieldcrypt decrypt --field Account.Order.$.OrderID --in doc.enc.json
  fieldcrypt decrypt --exclude Account.Name --private-key alice.pem --passphrase ...

Without --in the document is read from stdin; without --out it is written to stdout.
Exit codes: 0 success, 1 fieldcrypt error, 2 usage error (argparse).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from fieldcrypt import __version__
from fieldcrypt.core.exceptions import FieldCryptError
from fieldcrypt.core.orchestrator import decrypt, encrypt
from fieldcrypt.security.kdf import DEFAULT_KDF_LIMIT, DEFAULT_KDF_PARAMS

from .context import build_context
from .logging_config import configure_logging


logger = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--in", dest="input", default=None, help="input JSON file (default: stdin)")
    parser.add_argument("--out", dest="output", default=None, help="output JSON file (default: stdout)")
    selection = parser.add_mutually_exclusive_group(required=True)
    selection.add_argument("--field", dest="fields", action="append", help="path to encrypt (repeatable)")
    selection.add_argument("--exclude", dest="exclude", action="append", help="path to leave in clear (repeatable)")
    parser.add_argument("--password", default=None, help="password (or FIELDCRYPT_PASSWORD)")
    parser.add_argument("--salt", default="", help="salt appended to the password")
    parser.add_argument("--tag-key", dest="tag_key", default=None, help="integrity tag key (or FIELDCRYPT_TAG_KEY)")
    parser.add_argument("--workers", type=int, default=None, help="worker threads for field operations")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fieldcrypt", description="Selective field encryption for JSON documents")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encrypt", help="encrypt selected fields")
    _add_common(enc)
    enc.add_argument("--recipient", dest="recipients", action="append", help="recipient public key PEM file (repeatable)")
    enc.add_argument("--kdf-time", type=int, default=DEFAULT_KDF_PARAMS.time_cost)
    enc.add_argument("--kdf-memory", type=int, default=DEFAULT_KDF_PARAMS.memory_cost, help="KiB")
    enc.add_argument("--kdf-parallelism", type=int, default=DEFAULT_KDF_PARAMS.parallelism)

    dec = sub.add_parser("decrypt", help="decrypt selected fields")
    _add_common(dec)
    dec.add_argument("--private-key", dest="private_key", default=None, help="private key PEM file")
    dec.add_argument("--passphrase", default=None, help="private key passphrase (or FIELDCRYPT_PASSPHRASE)")
    dec.add_argument("--kdf-max-time", type=int, default=DEFAULT_KDF_LIMIT.time_cost)
    dec.add_argument("--kdf-max-memory", type=int, default=DEFAULT_KDF_LIMIT.memory_cost, help="KiB")
    dec.add_argument("--kdf-max-parallelism", type=int, default=DEFAULT_KDF_LIMIT.parallelism)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        stdin_text = None if args.input else sys.stdin.read()
        ctx = build_context(args, stdin_text=stdin_text)
        operation = encrypt if ctx.command == "encrypt" else decrypt
        result = operation(ctx.request)
    except FieldCryptError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1

    if ctx.output is not None:
        ctx.output.write_text(result + "\n", encoding="utf-8")
    else:
        sys.stdout.write(result + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
