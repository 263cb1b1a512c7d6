"""
discount.py — Discount expressed as a fixed Price or a percentage.

Percentage has priority over price: a Discount(percentage=10, price=5 EUR)
takes 10% off and ignores the 5 EUR.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict

from .core import DecodeError, Price


@dataclass(frozen=True)
class Discount:
    price: Price = field(default_factory=Price.zero)
    percentage: int = 0

    def apply(self, price: Price) -> Price:
        """
        Discounted price.

        Raises:
            CurrencyMismatchError: for a fixed discount in another currency
        """
        if self.percentage:
            return price.discounted(self.percentage)
        return price.sub(self.price)

    def is_empty(self) -> bool:
        return not self.percentage and self.price.is_zero()

    def to_dict(self) -> Dict[str, Any]:
        """Empty fields are omitted."""
        data: Dict[str, Any] = {}
        if not self.price.is_zero() or self.price.currency:
            data["price"] = self.price.to_dict()
        if self.percentage:
            data["percentage"] = self.percentage
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> Discount:
        if not isinstance(data, Mapping):
            raise DecodeError(f"expected an object, got {type(data).__name__}")
        percentage = data.get("percentage", 0)
        if isinstance(percentage, bool) or not isinstance(percentage, int):
            raise DecodeError(f"invalid percentage: {percentage!r}")
        price = data.get("price")
        return cls(
            price=Price.from_dict(price) if price is not None else Price.zero(),
            percentage=percentage,
        )
