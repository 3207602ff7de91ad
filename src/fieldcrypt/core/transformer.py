"""Per-leaf encrypt/decrypt transforms handed to the tree walker."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from . import envelope
from .exceptions import DecryptionError, FormatError, IntegrityError
from .hashing import compute_tag, verify_tag


logger = logging.getLogger(__name__)


def leaf_to_text(value: Any) -> str:
    """Serialize a leaf so its JSON type survives the round-trip."""
    return json.dumps(value, ensure_ascii=False)


def text_to_leaf(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        # not produced by leaf_to_text; hand back the plain string
        return text


def tag_message(value: Any, text: str) -> str:
    """Text the integrity tag covers: the string itself, or the JSON text of any other leaf."""
    return value if isinstance(value, str) else text


class LeafEncryptor:
    """Turn a plaintext leaf into an envelope token."""

    def __init__(self, cipher, tag_key: Optional[str] = None):
        self.cipher = cipher
        self.tag_key = tag_key

    def __call__(self, path_key: str, value: Any) -> str:
        plaintext = leaf_to_text(value)
        ciphertext = self.cipher.encrypt(plaintext.encode("utf-8"))
        tag = None
        if self.tag_key is not None:
            tag = compute_tag(self.tag_key, tag_message(value, plaintext))
        return envelope.wrap(ciphertext, tag)


class LeafDecryptor:
    """Turn an envelope token back into the plaintext leaf value.

    When a tag key is set every envelope must carry a tag and the tag must
    match the recovered leaf. Without a tag key stored tags are ignored.
    """

    def __init__(self, cipher, tag_key: Optional[str] = None):
        self.cipher = cipher
        self.tag_key = tag_key

    def __call__(self, path_key: str, value: Any) -> Any:
        if not envelope.is_envelope(value):
            raise FormatError(f"ciphertext format error at {path_key}: missing data marker")

        env = envelope.unwrap(value)
        try:
            plaintext = self.cipher.decrypt(env.ciphertext).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError(f"decrypted value at {path_key} is not valid UTF-8") from exc
        leaf = text_to_leaf(plaintext)

        if self.tag_key is not None:
            if env.tag is None:
                raise FormatError(f"ciphertext does not contain a tag part ({path_key})")
            if not verify_tag(self.tag_key, tag_message(leaf, plaintext), env.tag):
                logger.warning("integrity tag mismatch at %s", path_key)
                raise IntegrityError(f"verification error ({path_key})")

        return leaf
