"""Address and amount validation.

Addresses are StrKeys: base32 of ``version byte + 32-byte payload +
CRC16-XModem checksum (little-endian)``. Accounts start with G, contracts
with C.
"""

import base64
import binascii
from decimal import Decimal, InvalidOperation
from typing import Union

from passkey_wallet.wallet.base import SmartAccountError, SmartAccountErrorCode

VERSION_ACCOUNT = 6 << 3  # "G"
VERSION_CONTRACT = 2 << 3  # "C"
ADDRESS_VERSIONS = (VERSION_ACCOUNT, VERSION_CONTRACT)

STRKEY_LENGTH = 56
PAYLOAD_LENGTH = 32


def _checksum(data: bytes) -> bytes:
    return binascii.crc_hqx(data, 0).to_bytes(2, "little")


def encode_strkey(version: int, payload: bytes) -> str:
    """Encode a 32-byte payload as a StrKey."""
    if len(payload) != PAYLOAD_LENGTH:
        raise ValueError(f"StrKey payload must be {PAYLOAD_LENGTH} bytes")
    body = bytes([version]) + payload
    return base64.b32encode(body + _checksum(body)).decode("ascii")


def is_valid_address(address: str) -> bool:
    """Check an account (G...) or contract (C...) address."""
    if not isinstance(address, str) or len(address) != STRKEY_LENGTH:
        return False

    try:
        raw = base64.b32decode(address, casefold=False)
    except (binascii.Error, ValueError):
        return False

    body, checksum = raw[:-2], raw[-2:]
    return body[0] in ADDRESS_VERSIONS and _checksum(body) == checksum


def validate_address(address: str, field: str = "address") -> str:
    """Validate an address.

    Raises:
        SmartAccountError: INVALID_ADDRESS
    """
    if not is_valid_address(address):
        raise SmartAccountError(
            SmartAccountErrorCode.INVALID_ADDRESS, f"Invalid {field}: {address!r}"
        )
    return address


def validate_amount(amount: Union[Decimal, int, float, str], field: str = "amount") -> Decimal:
    """Validate a positive, finite token amount.

    Returns:
        The amount as a Decimal

    Raises:
        SmartAccountError: INVALID_AMOUNT
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise SmartAccountError(
            SmartAccountErrorCode.INVALID_AMOUNT, f"Invalid {field}: {amount!r}"
        ) from None

    if not value.is_finite() or value <= 0:
        raise SmartAccountError(
            SmartAccountErrorCode.INVALID_AMOUNT, f"Invalid {field}: {amount!r}"
        )
    return value
