""" Utility for integrity tag operations. """

import hashlib
import hmac


def compute_tag(key: str, message: str) -> str:

    # Keyed HMAC-SHA256 over message, lowercase hex.

    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_tag(key: str, message: str, tag: str) -> bool:
    expected = compute_tag(key, message)
    return hmac.compare_digest(expected, tag)
