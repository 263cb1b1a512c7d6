"""
adapters.py — Persistence glue around the canonical Price codec.

Database columns store the canonical JSON document as bytes:

    {"amount": "12.45", "currency": "EUR"}

to_db_value() is the encode-on-write hook, from_db_value() the
decode-on-read hook. Both only call Price.to_dict()/from_dict(); drivers
and ORMs call these functions, the core never knows about them.

FlatPrice is the lossy escape hatch for mapping layers that cannot call
custom hooks: the amount becomes a plain float. Never use it for arithmetic.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict
import json

from .core import DecodeError, Price
from .discount import Discount


def _as_bytes(value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(
            f"type assertion to bytes failed: got {type(value).__name__}"
        )
    return bytes(value)


def _load(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON column value: {e}") from e


# ==============================================================================
# PRICE
# ==============================================================================

def to_db_value(price: Price) -> bytes:
    """Encode a Price for storage."""
    return price.to_json().encode("utf-8")


def from_db_value(value: Any) -> Price:
    """
    Decode a stored Price.

    Raises:
        TypeError: if value is not bytes/bytearray
        DecodeError: if the document is malformed
    """
    return Price.from_dict(_load(_as_bytes(value)))


# ==============================================================================
# DISCOUNT
# ==============================================================================

def discount_to_db_value(discount: Discount) -> bytes:
    return json.dumps(discount.to_dict()).encode("utf-8")


def discount_from_db_value(value: Any) -> Discount:
    return Discount.from_dict(_load(_as_bytes(value)))


# ==============================================================================
# FLAT PROJECTION
# ==============================================================================

@dataclass
class FlatPrice:
    """
    Mutable, float-based projection of a Price.

    WARNING: amount is a float. to_price() does not restore the
    original exact amount if it had more digits than a float can hold.
    """
    amount: float = 0.0
    currency: str = ""

    @classmethod
    def from_price(cls, price: Price) -> FlatPrice:
        return cls(amount=price.float_amount(), currency=price.currency)

    def to_price(self) -> Price:
        return Price.from_float(self.amount, self.currency)

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "currency": self.currency}

    @classmethod
    def from_dict(cls, data: Mapping) -> FlatPrice:
        if not isinstance(data, Mapping):
            raise DecodeError(f"expected an object, got {type(data).__name__}")
        amount = data.get("amount", 0.0)
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise DecodeError(f"invalid flat amount: {amount!r}")
        return cls(amount=float(amount), currency=data.get("currency") or "")
