"""Tagged ledger values and fixed-point balance formatting.

Token balances are stored on-chain as integers in the smallest unit
(10,000,000 units per display unit). The RPC returns them as tagged
values in one of several integer encodings; 128-bit values arrive split
into signed/unsigned 64-bit halves.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

UNITS_PER_TOKEN = 10_000_000
DECIMALS = 7


class ValueTag(str, Enum):
    """Integer encodings accepted for a balance."""

    I128 = "i128"
    U128 = "u128"
    I64 = "i64"
    U64 = "u64"
    I32 = "i32"
    U32 = "u32"
    VOID = "void"


SUPPORTED_TAGS = frozenset(tag.value for tag in ValueTag)
WIDE_TAGS = frozenset({ValueTag.I128.value, ValueTag.U128.value})


class UnexpectedValueType(ValueError):
    """Raised when a balance entry holds a value of an unsupported type."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Unexpected balance value type: {tag}")


@dataclass(frozen=True)
class WireValue:
    """A tagged value as returned by a contract data query.

    Attributes:
        tag: Type tag (i128, u64, void, symbol, ...)
        value: Integer payload for 32/64-bit tags, raw payload otherwise
        hi: High 64 bits for 128-bit tags
        lo: Low 64 bits for 128-bit tags
    """
    tag: str
    value: Any = None
    hi: Optional[int] = None
    lo: Optional[int] = None

    @classmethod
    def i128(cls, hi: int, lo: int) -> "WireValue":
        return cls(tag=ValueTag.I128.value, hi=hi, lo=lo)

    @classmethod
    def u128(cls, hi: int, lo: int) -> "WireValue":
        return cls(tag=ValueTag.U128.value, hi=hi, lo=lo)

    @classmethod
    def void(cls) -> "WireValue":
        return cls(tag=ValueTag.VOID.value)

    @classmethod
    def from_json(cls, payload: dict) -> "WireValue":
        """Parse the JSON form used by the RPC client.

        ``{"type": "i128", "hi": "0", "lo": "25000000"}``,
        ``{"type": "u64", "value": "42"}``, ``{"type": "void"}``.
        Integer strings are converted; other types are kept verbatim.
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
            raise UnexpectedValueType(type(payload).__name__)

        tag = payload["type"]
        if tag in WIDE_TAGS:
            return cls(tag=tag, hi=int(payload["hi"]), lo=int(payload["lo"]))
        if tag == ValueTag.VOID.value:
            return cls(tag=tag)
        if tag in SUPPORTED_TAGS:
            return cls(tag=tag, value=int(payload["value"]))
        return cls(tag=tag, value=payload.get("value"))

    def to_json(self) -> dict:
        if self.tag in WIDE_TAGS:
            return {"type": self.tag, "hi": str(self.hi), "lo": str(self.lo)}
        if self.tag == ValueTag.VOID.value:
            return {"type": self.tag}
        if self.tag in SUPPORTED_TAGS:
            return {"type": self.tag, "value": str(self.value)}
        return {"type": self.tag, "value": self.value}


def format_units(units: int) -> str:
    """Render smallest-unit integer as a decimal string.

    Trailing fractional zeros and a bare decimal point are dropped;
    the sign applies to the whole string.

    >>> format_units(25_000_000)
    '2.5'
    >>> format_units(-1)
    '-0.0000001'
    """
    negative = units < 0
    whole, fraction = divmod(abs(units), UNITS_PER_TOKEN)
    fractional = str(fraction).rjust(DECIMALS, "0").rstrip("0")

    text = str(whole)
    if fractional:
        text = f"{text}.{fractional}"
    return f"-{text}" if negative else text


def decode_units(value: WireValue) -> int:
    """Extract the integer amount from a tagged value.

    Raises:
        UnexpectedValueType: For tags outside the supported set
    """
    if value.tag in WIDE_TAGS:
        return (int(value.hi) << 64) + int(value.lo)
    if value.tag == ValueTag.VOID.value:
        return 0
    if value.tag in SUPPORTED_TAGS:
        return int(value.value)
    raise UnexpectedValueType(value.tag)


def decode_balance(value: WireValue) -> str:
    """Decode a tagged balance into a display string."""
    return format_units(decode_units(value))
