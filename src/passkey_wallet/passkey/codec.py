"""Text encoding for credential key material.

Public keys are persisted as standard (padded) base64 inside JSON records.
"""

import base64
import binascii


class CodecError(ValueError):
    """Raised when persisted key material cannot be decoded."""

    pass


def encode(data: bytes) -> str:
    """Encode raw bytes as base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: str) -> bytes:
    """Decode base64 text produced by ``encode``.

    Raises:
        CodecError: If the text is not valid base64
    """
    if not isinstance(text, str):
        raise CodecError(f"Expected base64 text, got {type(text).__name__}")

    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise CodecError(f"Malformed base64 key material: {e}") from e
