#!/usr/bin/env python3
"""
installments_demo.py — Payable prices, installments and charges

================================================================================
THE PROBLEM
================================================================================

    >>> 12.456 / 6 * 6
    12.456

Looks fine, until each installment has to be charged to a card: 12.456 / 6
is 2.076, which is not payable. Round every part to 2.08 and the customer
pays 12.48; truncate to 2.07 and the shop receives 12.42. Neither is the
payable total of 12.46.

================================================================================
THE FIX
================================================================================

    from pricing import Price

    total = Price.from_float(12.456, "EUR")
    parts = total.split_in_payables(6)

    # 2.08 + 2.08 + 2.08 + 2.08 + 2.07 + 2.07 == 12.46
    assert sum(parts, Price.zero()) == total.get_payable()

================================================================================
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pricing import (
    Price,
    RoundingMode,
    Charge,
    Charges,
    CurrencyMismatchError,
    CHARGE_TYPE_MAIN,
    CHARGE_TYPE_GIFT_CARD,
)


def demonstrate_split():
    """Show the largest remainder split."""
    print("=" * 60)
    print("INSTALLMENTS")
    print("=" * 60)
    print()

    total = Price.from_float(12.456, "EUR")
    print(f"Total:   {total}")
    print(f"Payable: {total.get_payable()}")
    print()

    parts = total.split_in_payables(6)
    for i, part in enumerate(parts, 1):
        print(f"  Installment {i}: {part}")
    print()

    print(f"Sum of parts: {sum(parts, Price.zero())}")
    print()


def demonstrate_rounding():
    """Show the four rounding modes on the same amounts."""
    print("=" * 60)
    print("ROUNDING MODES (precision 1)")
    print("=" * 60)
    print()

    for value in (7.5, -7.5, 7.45, -7.45):
        price = Price.from_float(value, "EUR")
        row = ", ".join(
            f"{mode.value}={price.get_payable_by_rounding_mode(mode, 1).amount:f}"
            for mode in RoundingMode
        )
        print(f"  {value:>6}: {row}")
    print()


def demonstrate_currency_guard():
    """Show currency safety and the neutral zero."""
    print("=" * 60)
    print("CURRENCY GUARD")
    print("=" * 60)
    print()

    eur = Price.from_float(100, "EUR")
    usd = Price.from_float(100, "USD")

    print(">>> eur + usd")
    try:
        eur + usd
    except CurrencyMismatchError as e:
        print(f"CurrencyMismatchError: {e}")
    print()

    print(">>> Price.zero('USD') + eur")
    print(Price.zero("USD") + eur)
    print()


def demonstrate_charges():
    """Show a cart line paid partly with gift cards."""
    print("=" * 60)
    print("CHARGES")
    print("=" * 60)
    print()

    charges = (
        Charges()
        .add_charge(Charge(type=CHARGE_TYPE_MAIN, price=Price.from_float(40, "EUR")))
        .add_charge(Charge(type=CHARGE_TYPE_GIFT_CARD, reference="GC-1", price=Price.from_float(7.5, "EUR")))
        .add_charge(Charge(type=CHARGE_TYPE_GIFT_CARD, reference="GC-2", price=Price.from_float(2.5, "EUR")))
    )

    for charge in charges:
        print(f"  {charge.type:<9} {charge.reference:<5} {charge.price}")
    print()
    print(f"Gift cards total: {charges.get_by_type_forced(CHARGE_TYPE_GIFT_CARD).price}")
    print(f"Quantity 3:       {charges.multiply(3).get_by_type_forced(CHARGE_TYPE_MAIN).price}")
    print()


def main():
    demonstrate_split()
    demonstrate_rounding()
    demonstrate_currency_guard()
    demonstrate_charges()


if __name__ == "__main__":
    main()
