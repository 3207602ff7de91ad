"""
Unit tests for the envelope codec.
"""

import pytest

from fieldcrypt.core import envelope
from fieldcrypt.core.exceptions import FormatError


TAG = "a" * 64


# ==============================================================================
# Tests: wrap
# ==============================================================================

def test_wrap_without_tag():
    token = envelope.wrap(b"\x00\x01\x02")
    assert token == "_data:AAEC"


def test_wrap_with_tag():
    token = envelope.wrap(b"\x00\x01\x02", TAG)
    assert token == "_data:AAEC;_hmac:" + TAG


def test_wrap_empty_bytes():
    assert envelope.wrap(b"") == "_data:"


@pytest.mark.parametrize("tag", ["", "A" * 64, "abc;_hmac:abc", "ab\n", "not hex"])
def test_wrap_rejects_tag_unwrap_would_refuse(tag):
    with pytest.raises(FormatError, match="lowercase hex"):
        envelope.wrap(b"\x00", tag)


# ==============================================================================
# Tests: unwrap
# ==============================================================================

@pytest.mark.parametrize("data", [b"", b"x", b"\xff" * 33, bytes(range(256))])
def test_unwrap_recovers_bytes_and_tag(data):
    env = envelope.unwrap(envelope.wrap(data, TAG))
    assert env.ciphertext == data
    assert env.tag == TAG


def test_unwrap_without_tag_part():
    env = envelope.unwrap("_data:aGVsbG8=")
    assert env.ciphertext == b"hello"
    assert env.tag is None


def test_unwrap_missing_data_marker():
    with pytest.raises(FormatError, match="missing data marker"):
        envelope.unwrap("aGVsbG8=")


def test_unwrap_marker_must_be_a_prefix():
    with pytest.raises(FormatError):
        envelope.unwrap(" _data:aGVsbG8=")


def test_unwrap_invalid_base64():
    with pytest.raises(FormatError, match="invalid base64"):
        envelope.unwrap("_data:not base64!")


def test_unwrap_tag_part_without_prefix():
    with pytest.raises(FormatError, match="malformed tag part"):
        envelope.unwrap("_data:aGVsbG8=;" + TAG)


def test_unwrap_tag_must_be_lowercase_hex():
    with pytest.raises(FormatError, match="lowercase hex"):
        envelope.unwrap("_data:aGVsbG8=;_hmac:" + "A" * 64)


def test_unwrap_empty_tag():
    with pytest.raises(FormatError):
        envelope.unwrap("_data:aGVsbG8=;_hmac:")


def test_unwrap_too_many_segments():
    with pytest.raises(FormatError, match="ciphertext format error"):
        envelope.unwrap("_data:aGVsbG8=;_hmac:abcd;_hmac:abcd")


def test_is_envelope():
    assert envelope.is_envelope("_data:")
    assert not envelope.is_envelope("data:")
    assert not envelope.is_envelope(42)
    assert not envelope.is_envelope(None)


def test_b64_roundtrip_empty():
    assert envelope.b64decode(envelope.b64encode(b"")) == b""
