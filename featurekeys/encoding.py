"""
FeatureKeys - Hex and Base64url Helpers

Keys, addresses and blobs cross the host boundary as hex text.
JWK private keys use unpadded base64url.
"""

import base64
import binascii
from typing import Optional

from .errors import DecodeError


def normalize_hex(value: str) -> str:
    """Strip whitespace and an optional 0x prefix."""
    value = value.strip()
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    return value


def hex_to_bytes(value: str, length: Optional[int] = None, what: str = "value") -> bytes:
    """
    Decode hex text into bytes.

    Args:
        value: Hex string (0x prefix allowed)
        length: Expected byte length, or None for any length
        what: Name used in error messages

    Returns:
        Decoded bytes

    Raises:
        DecodeError: Not valid hex, or wrong length
    """
    if not isinstance(value, str):
        raise DecodeError(f"{what} must be a hex string")

    cleaned = normalize_hex(value)
    try:
        data = bytes.fromhex(cleaned)
    except ValueError:
        raise DecodeError(f"{what} is not valid hex") from None

    if length is not None and len(data) != length:
        raise DecodeError(f"{what} must be {length} bytes, got {len(data)}")

    return data


def bytes_to_hex(data: bytes) -> str:
    return data.hex()


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str, what: str = "value") -> bytes:
    """Decode unpadded base64url (JWK field encoding)."""
    if not isinstance(value, str):
        raise DecodeError(f"{what} must be a base64url string")
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise DecodeError(f"{what} is not valid base64url") from None
