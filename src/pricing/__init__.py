"""
pricing — Payable Prices and Charges

Currency-safe, arbitrary-precision prices with deterministic rounding to
payable amounts, exact splitting, and charge aggregation.

================================================================================
QUICK START
================================================================================

Basic usage:

    from pricing import Price

    # Create prices (never loses precision)
    total = Price.from_float(12.456, "EUR")
    total.get_payable()                 # 12.46 EUR

    # Split in installments (sum ALWAYS equals the payable total)
    parts = total.split_in_payables(6)  # 2.08 x4, 2.07 x2

    # Tax
    net = Price.from_int(100, 1, "EUR")
    net.tax_from_net(19)                # 19 EUR
    net.taxed(19).tax_from_gross(19)    # 19 EUR

Charges:

    from pricing import Charge, Charges, CHARGE_TYPE_MAIN, CHARGE_TYPE_GIFT_CARD

    charges = (
        Charges()
        .add_charge(Charge(price=Price.from_float(40, "EUR"), type=CHARGE_TYPE_MAIN))
        .add_charge(Charge(price=Price.from_float(10, "EUR"),
                           type=CHARGE_TYPE_GIFT_CARD, reference="GC-123"))
    )
    charges.get_by_type_forced(CHARGE_TYPE_GIFT_CARD).price  # 10 EUR

================================================================================
"""

import logging

# Core Price type
from .core import (
    Price,
    RoundingMode,
    PayablePolicy,
    DEFAULT_PAYABLE_POLICY,
    currency_guard,
    sum_all,
    PricingError,
    CurrencyMismatchError,
    InvalidSplitCountError,
    EmptyAggregateError,
    DecodeError,
)

# Charge aggregation
from .charges import (
    Charge,
    ChargeQualifier,
    Charges,
    ChargeTypeMismatchError,
    CHARGE_TYPE_MAIN,
    CHARGE_TYPE_GIFT_CARD,
)

from .discount import Discount

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Core
    "Price",
    "RoundingMode",
    "PayablePolicy",
    "DEFAULT_PAYABLE_POLICY",
    "currency_guard",
    "sum_all",
    # Errors
    "PricingError",
    "CurrencyMismatchError",
    "InvalidSplitCountError",
    "EmptyAggregateError",
    "DecodeError",
    "ChargeTypeMismatchError",
    # Charges
    "Charge",
    "ChargeQualifier",
    "Charges",
    "CHARGE_TYPE_MAIN",
    "CHARGE_TYPE_GIFT_CARD",
    "Discount",
]
