"""Envelope codec: the text token that replaces an encrypted leaf.

Token grammar::

    token := "_data:" base64 [";_hmac:" tag]
    tag   := lowercase hex digest

The base64 part uses the standard alphabet with padding and no line wraps,
so it can never contain the ``;`` separator.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import NamedTuple, Optional

from .exceptions import FormatError


DATA_PREFIX = "_data:"
TAG_PREFIX = "_hmac:"
SEPARATOR = ";"

_DATA_RE = re.compile(r"^_data:")
_TAG_RE = re.compile(r"[0-9a-f]+")


class Envelope(NamedTuple):
    ciphertext: bytes
    tag: Optional[str] = None


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise FormatError("ciphertext format error: invalid base64 data") from exc


def is_envelope(value) -> bool:
    """Return True if ``value`` is a string carrying the data marker."""
    return isinstance(value, str) and _DATA_RE.match(value) is not None


def wrap(ciphertext: bytes, tag: Optional[str] = None) -> str:
    """Serialize ``ciphertext`` (and an optional integrity tag) into a token.

    Raises :class:`FormatError` if ``tag`` is not a lowercase hex digest.
    """
    token = DATA_PREFIX + b64encode(ciphertext)
    if tag is not None:
        if not isinstance(tag, str) or not _TAG_RE.fullmatch(tag):
            raise FormatError("integrity tag must be a lowercase hex digest")
        token += SEPARATOR + TAG_PREFIX + tag
    return token


def unwrap(token: str) -> Envelope:
    """Parse a token produced by :func:`wrap`.

    Raises :class:`FormatError` if the token does not start with the data
    marker or any segment is malformed.
    """
    if not is_envelope(token):
        raise FormatError("ciphertext format error: missing data marker")

    segments = token.split(SEPARATOR)
    if not segments or len(segments) > 2:
        raise FormatError("ciphertext format error")

    ciphertext = b64decode(segments[0][len(DATA_PREFIX):])

    tag = None
    if len(segments) == 2:
        tag_part = segments[1]
        if not tag_part.startswith(TAG_PREFIX):
            raise FormatError("ciphertext format error: malformed tag part")
        tag = tag_part[len(TAG_PREFIX):]
        if not _TAG_RE.fullmatch(tag):
            raise FormatError("ciphertext format error: tag is not a lowercase hex digest")

    return Envelope(ciphertext, tag)
