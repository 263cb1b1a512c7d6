"""
charges.py — Charge aggregation on top of Price

================================================================================
CHARGES
================================================================================

A product or cart line is rarely paid with a single amount. A Charge is one
part of the payment: the price actually charged (possibly in a loyalty
currency such as "miles"), its value in a base currency, a type tag
("main", "giftcard", ...) and a reference that tells apart several charges
of the same type (e.g. two different gift card numbers).

┌─────────────────────────────────────────────────────────────────────────────┐
│                               Charges                                        │
│                                                                              │
│   ChargeQualifier(type="main",     reference="")       -> Charge             │
│   ChargeQualifier(type="giftcard", reference="GC-1")   -> Charge             │
│   ChargeQualifier(type="giftcard", reference="GC-2")   -> Charge             │
└─────────────────────────────────────────────────────────────────────────────┘

RULES:
- Charges sharing a qualifier are merged: price and value are summed and
  immediately rounded to payable. Repeated merges therefore never carry
  sub-cent drift, but they are not bit-for-bit associative with a single
  final rounding. Sum Price objects directly when exact totals matter.
- get_by_type() sums across references and does NOT round.
- Every mutator returns a new Charges; snapshots never share their mapping.

================================================================================
USAGE
================================================================================

    from pricing import Price, Charge, Charges, CHARGE_TYPE_MAIN

    charges = (
        Charges()
        .add_charge(Charge(price=Price.from_float(19.99, "EUR"), type=CHARGE_TYPE_MAIN))
        .add_charge(Charge(price=Price.from_int(500, 1, "miles"), type="miles"))
    )

    main, found = charges.get_by_type(CHARGE_TYPE_MAIN)

================================================================================
"""

from __future__ import annotations
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple
import logging

from .core import DecodeError, Price, PricingError


logger = logging.getLogger(__name__)

# Default type for a Charge
CHARGE_TYPE_MAIN = "main"
# Charge type used for gift card payments
CHARGE_TYPE_GIFT_CARD = "giftcard"


class ChargeTypeMismatchError(PricingError, TypeError):
    """Two charges of different type were added together."""


# ==============================================================================
# CHARGE
# ==============================================================================

@dataclass(frozen=True)
class ChargeQualifier:
    """Distinguishes charges by type and reference. Used as ledger key."""
    type: str = ""
    reference: str = ""


@dataclass(frozen=True)
class Charge:
    """
    A Price of a certain type, plus its value in a base currency.

    The zero Charge (all defaults) has zero price and value with an empty
    currency, so it can absorb any other charge of the same type.
    """
    price: Price = field(default_factory=Price.zero)
    value: Price = field(default_factory=Price.zero)
    type: str = ""
    reference: str = ""

    @property
    def qualifier(self) -> ChargeQualifier:
        return ChargeQualifier(type=self.type, reference=self.reference)

    def add(self, other: Charge) -> Charge:
        """
        Sum price and value of two charges of the same type.

        The reference of self is kept.

        Raises:
            ChargeTypeMismatchError: if the types differ
            CurrencyMismatchError: if price or value currencies are incompatible
        """
        if self.type != other.type:
            raise ChargeTypeMismatchError(
                f"charge type mismatch: {self.type!r} vs {other.type!r}"
            )
        return replace(
            self,
            price=self.price.add(other.price),
            value=self.value.add(other.value),
        )

    def get_payable(self) -> Charge:
        """Round price and value to their payable amounts."""
        return replace(
            self,
            price=self.price.get_payable(),
            value=self.value.get_payable(),
        )

    def multiply(self, qty: int) -> Charge:
        return replace(
            self,
            price=self.price.multiply(qty),
            value=self.value.multiply(qty),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price.to_dict(),
            "value": self.value.to_dict(),
            "type": self.type,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Charge:
        if not isinstance(data, Mapping):
            raise DecodeError(f"expected an object, got {type(data).__name__}")
        price = data.get("price")
        value = data.get("value")
        ctype = data.get("type") or ""
        reference = data.get("reference") or ""
        if not isinstance(ctype, str):
            raise DecodeError(f"invalid charge type: {ctype!r}")
        if not isinstance(reference, str):
            raise DecodeError(f"invalid charge reference: {reference!r}")
        return cls(
            price=Price.from_dict(price) if price is not None else Price.zero(),
            value=Price.from_dict(value) if value is not None else Price.zero(),
            type=ctype,
            reference=reference,
        )


# ==============================================================================
# CHARGES (LEDGER)
# ==============================================================================

def _merge_into(
    target: Dict[ChargeQualifier, Charge], charge: Charge
) -> None:
    """Add charge into a private mapping, merging on qualifier collision."""
    qualifier = charge.qualifier
    existing = target.get(qualifier)
    if existing is None:
        target[qualifier] = charge
        return
    merged = existing.add(charge).get_payable()
    logger.debug(
        "merged charge %s/%s: %s + %s -> %s",
        qualifier.type, qualifier.reference, existing.price, charge.price, merged.price,
    )
    target[qualifier] = merged


class Charges:
    """
    Immutable mapping ChargeQualifier -> Charge.

    PROPERTIES:
    - Keys are unique: colliding charges are merged and rounded
    - Mutators (add, add_charge, multiply) return a new Charges
    - The internal mapping is never handed out; accessors return copies
    """

    __slots__ = ("_by_qualifier",)

    def __init__(self, charges: Iterable[Charge] = ()):
        by_qualifier: Dict[ChargeQualifier, Charge] = {}
        for charge in charges:
            _merge_into(by_qualifier, charge)
        self._by_qualifier = by_qualifier

    @classmethod
    def _wrap(cls, by_qualifier: Dict[ChargeQualifier, Charge]) -> Charges:
        instance = cls.__new__(cls)
        instance._by_qualifier = by_qualifier
        return instance

    @classmethod
    def from_charges_by_type(cls, charges_by_type: Mapping[str, Charge]) -> Charges:
        """
        Build from a mapping keyed by charge type (legacy shape).

        The qualifier is (key, charge.reference); the key wins over charge.type.
        """
        return cls._wrap({
            ChargeQualifier(type=ctype, reference=charge.reference): charge
            for ctype, charge in charges_by_type.items()
        })

    # -------------------------------------------------------------------------
    # Mutators (return new instances)
    # -------------------------------------------------------------------------

    def add_charge(self, charge: Charge) -> Charges:
        """Return new Charges with the given charge added."""
        by_qualifier = dict(self._by_qualifier)
        _merge_into(by_qualifier, charge)
        return Charges._wrap(by_qualifier)

    def add(self, other: Charges) -> Charges:
        """Return new Charges with all charges of other merged in."""
        by_qualifier = dict(self._by_qualifier)
        for charge in other._by_qualifier.values():
            _merge_into(by_qualifier, charge)
        return Charges._wrap(by_qualifier)

    def multiply(self, qty: int) -> Charges:
        """Return new Charges with every charge multiplied by qty."""
        return Charges._wrap({
            qualifier: charge.multiply(qty)
            for qualifier, charge in self._by_qualifier.items()
        })

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def has_type(self, ctype: str) -> bool:
        return any(q.type == ctype for q in self._by_qualifier)

    def get_by_type(self, ctype: str) -> Tuple[Charge, bool]:
        """
        Sum up all charges of the given type, across references.

        Returns (Charge(), False) if there is none.
        """
        if not self.has_type(ctype):
            return Charge(), False
        result = Charge(type=ctype)
        for qualifier, charge in self._by_qualifier.items():
            if qualifier.type == ctype:
                result = result.add(replace(charge, type=ctype))
        return result, True

    def get_by_type_forced(self, ctype: str) -> Charge:
        """Like get_by_type, but a missing type yields the zero Charge. For views."""
        result, _ = self.get_by_type(ctype)
        return result

    def has_charge_qualifier(self, qualifier: ChargeQualifier) -> bool:
        return qualifier in self._by_qualifier

    def get_by_charge_qualifier(self, qualifier: ChargeQualifier) -> Tuple[Charge, bool]:
        """Direct lookup, no summation. Returns (Charge(), False) if missing."""
        charge = self._by_qualifier.get(qualifier)
        if charge is None:
            return Charge(), False
        return charge, True

    def get_by_charge_qualifier_forced(self, qualifier: ChargeQualifier) -> Charge:
        result, _ = self.get_by_charge_qualifier(qualifier)
        return result

    def get_all_charges(self) -> Dict[ChargeQualifier, Charge]:
        """All charges by qualifier (copy)."""
        return dict(self._by_qualifier)

    def get_all_by_type(self, ctype: str) -> Dict[ChargeQualifier, Charge]:
        return {
            qualifier: charge
            for qualifier, charge in self._by_qualifier.items()
            if qualifier.type == ctype
        }

    def items(self) -> List[Charge]:
        """All charges as a list."""
        return list(self._by_qualifier.values())

    # -------------------------------------------------------------------------
    # Container protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._by_qualifier)

    def __iter__(self) -> Iterator[Charge]:
        return iter(list(self._by_qualifier.values()))

    def __contains__(self, item: object) -> bool:
        """Accepts a ChargeQualifier, or a Charge stored exactly as given."""
        if isinstance(item, Charge):
            return self._by_qualifier.get(item.qualifier) == item
        return item in self._by_qualifier

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Charges):
            return self._by_qualifier == other._by_qualifier
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def to_dict(self) -> List[Dict[str, Any]]:
        return [charge.to_dict() for charge in self._by_qualifier.values()]

    def __repr__(self) -> str:
        return f"Charges(entries={len(self._by_qualifier)})"
