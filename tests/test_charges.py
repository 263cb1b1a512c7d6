"""
test_charges.py — Tests for Charge and the Charges ledger

Tests cover:
- Charge addition, rounding and multiplication
- Qualifier collisions (merge + round)
- Lookup by type (summing across references) and by qualifier
- Forced lookups returning the zero Charge
- Snapshot isolation between ledgers
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pricing import (
    Price,
    Charge,
    ChargeQualifier,
    Charges,
    ChargeTypeMismatchError,
    CurrencyMismatchError,
    DecodeError,
    CHARGE_TYPE_MAIN,
    CHARGE_TYPE_GIFT_CARD,
)


def main_charge(amount: int, reference: str = "", currency: str = "€") -> Charge:
    return Charge(
        type=CHARGE_TYPE_MAIN,
        reference=reference,
        price=Price.from_int(amount, 1, currency),
    )


@pytest.fixture
def mixed_charges() -> Charges:
    charges = Charges()
    charges = charges.add_charge(main_charge(200, "SJHHQWAXX6HJSDZ82"))
    charges = charges.add_charge(Charge(type="type-a", price=Price.from_int(200, 1, "€")))
    charges = charges.add_charge(Charge(type="type-x", price=Price.from_int(200, 1, "€")))
    charges = charges.add_charge(main_charge(200))
    charges = charges.add_charge(Charge(type="type-c", reference="HUHUWHHUHX", price=Price.from_int(200, 1, "€")))
    charges = charges.add_charge(Charge(type="type-a", price=Price.from_int(200, 1, "€")))
    charges = charges.add_charge(main_charge(200, "ABC123"))
    return charges


# ==============================================================================
# Charge Tests
# ==============================================================================

class TestCharge:
    """Tests for a single Charge."""

    def test_zero_charge_defaults(self):
        charge = Charge()
        assert charge.price.is_zero()
        assert charge.value.is_zero()
        assert charge.type == ""
        assert charge.reference == ""

    def test_add_sums_price_and_value(self):
        a = Charge(type="main", price=Price.from_int(100, 1, "EUR"), value=Price.from_int(50, 1, "EUR"))
        b = Charge(type="main", price=Price.from_int(100, 1, "EUR"), value=Price.from_int(100, 1, "EUR"))

        result = a.add(b)

        assert result.price == Price.from_int(200, 1, "EUR")
        assert result.value == Price.from_int(150, 1, "EUR")

    def test_add_type_mismatch(self):
        with pytest.raises(ChargeTypeMismatchError):
            main_charge(1).add(Charge(type=CHARGE_TYPE_GIFT_CARD))

    def test_add_currency_mismatch(self):
        with pytest.raises(CurrencyMismatchError):
            main_charge(1, currency="EUR").add(main_charge(1, currency="USD"))

    def test_add_keeps_own_reference(self):
        result = main_charge(1, "A").add(main_charge(2, "B"))
        assert result.reference == "A"

    def test_get_payable_rounds_both(self):
        charge = Charge(
            type="main",
            price=Price.from_float(1.005, "EUR"),
            value=Price.from_float(2.004, "EUR"),
        ).get_payable()

        assert charge.price == Price.from_float(1.01, "EUR")
        assert charge.value == Price.from_float(2.0, "EUR")

    def test_multiply(self):
        charge = Charge(
            type="main",
            price=Price.from_float(2.5, "EUR"),
            value=Price.from_float(3, "miles"),
        ).multiply(3)

        assert charge.price == Price.from_float(7.5, "EUR")
        assert charge.value == Price.from_float(9, "miles")

    def test_qualifier(self):
        assert main_charge(1, "X").qualifier == ChargeQualifier(type="main", reference="X")

    def test_dict_round_trip(self):
        charge = Charge(
            type=CHARGE_TYPE_GIFT_CARD,
            reference="GC-1",
            price=Price.from_float(10.5, "EUR"),
            value=Price.from_float(10.5, "EUR"),
        )
        assert Charge.from_dict(charge.to_dict()) == charge

    @pytest.mark.parametrize("payload", [
        {"type": 5},
        {"type": "main", "reference": 42},
        {"type": ["main"]},
    ])
    def test_from_dict_rejects_non_string_labels(self, payload):
        with pytest.raises(DecodeError):
            Charge.from_dict(payload)


# ==============================================================================
# Charges Tests
# ==============================================================================

class TestChargesAdd:
    """Tests for merging ledgers."""

    def test_add_to_empty(self):
        c2 = Charges.from_charges_by_type({
            "main": Charge(type="main", price=Price.from_int(100, 1, "EUR"), value=Price.from_int(50, 1, "EUR")),
        })

        charge, found = Charges().add(c2).get_by_type("main")

        assert found
        assert charge == Charge(
            type="main",
            price=Price.from_int(100, 1, "EUR"),
            value=Price.from_int(50, 1, "EUR"),
        )

    def test_add_merges_same_qualifier(self):
        c2 = Charges.from_charges_by_type({
            "main": Charge(type="main", price=Price.from_int(100, 1, "EUR"), value=Price.from_int(50, 1, "EUR")),
        })
        c3 = Charges.from_charges_by_type({
            "main": Charge(type="main", price=Price.from_int(100, 1, "EUR"), value=Price.from_int(100, 1, "EUR")),
        })

        charge, found = c2.add(c3).get_by_type("main")

        assert found
        assert charge == Charge(
            type="main",
            price=Price.from_int(200, 1, "EUR"),
            value=Price.from_int(150, 1, "EUR"),
        )

    def test_merge_rounds_immediately(self):
        charges = (
            Charges()
            .add_charge(Charge(type="main", price=Price.from_float(1.004, "EUR")))
            .add_charge(Charge(type="main", price=Price.from_float(1.002, "EUR")))
        )
        charge, _ = charges.get_by_charge_qualifier(ChargeQualifier(type="main"))
        # 2.006 -> 2.01
        assert charge.price == Price.from_float(2.01, "EUR")

    def test_first_charge_is_stored_unrounded(self):
        charges = Charges().add_charge(Charge(type="main", price=Price.from_float(1.004, "EUR")))
        assert charges.get_by_type_forced("main").price == Price.from_float(1.004, "EUR")

    def test_merge_currency_mismatch_propagates(self):
        charges = Charges().add_charge(main_charge(1, currency="EUR"))
        with pytest.raises(CurrencyMismatchError):
            charges.add_charge(main_charge(1, currency="USD"))

    def test_constructor_merges(self):
        charges = Charges([main_charge(1), main_charge(2), main_charge(3, "X")])
        assert len(charges) == 2

    def test_snapshots_are_isolated(self):
        base = Charges().add_charge(main_charge(100))
        derived = base.add_charge(main_charge(50))
        multiplied = base.multiply(3)

        assert base.get_by_type_forced("main").price == Price.from_int(100, 1, "€")
        assert derived.get_by_type_forced("main").price == Price.from_int(150, 1, "€")
        assert multiplied.get_by_type_forced("main").price == Price.from_int(300, 1, "€")

    def test_get_all_charges_returns_copy(self):
        charges = Charges().add_charge(main_charge(100))
        snapshot = charges.get_all_charges()
        snapshot.clear()
        assert len(charges) == 1


class TestChargesLookup:
    """Tests for lookups by type and by qualifier."""

    def test_get_all_by_type(self, mixed_charges):
        assert len(mixed_charges.get_all_by_type(CHARGE_TYPE_MAIN)) == 3
        assert len(mixed_charges.get_all_by_type("type-a")) == 1
        assert len(mixed_charges.get_all_by_type("type-c")) == 1
        assert len(mixed_charges.get_all_by_type("type-x")) == 1

    def test_get_by_type_sums_references(self, mixed_charges):
        charge, found = mixed_charges.get_by_type(CHARGE_TYPE_MAIN)

        assert found
        assert charge == Charge(type=CHARGE_TYPE_MAIN, price=Price.from_int(600, 1, "€"))
        assert charge.price == Price.from_int(600, 1, "€").get_payable()

    def test_get_by_type_merged_entries(self, mixed_charges):
        charge, found = mixed_charges.get_by_type("type-a")
        assert found
        assert charge.price == Price.from_int(400, 1, "€")

    def test_get_by_type_missing(self, mixed_charges):
        charge, found = mixed_charges.get_by_type("unknown")
        assert not found
        assert charge == Charge()

    def test_get_by_type_forced(self):
        charges = Charges()
        assert charges.get_by_type_forced(CHARGE_TYPE_MAIN) == Charge()

        charges = charges.add_charge(main_charge(200, "SJHHQWAXX6HJSDZ82"))
        assert charges.get_by_type_forced(CHARGE_TYPE_MAIN) == Charge(
            type=CHARGE_TYPE_MAIN, price=Price.from_int(200, 1, "€")
        )

    def test_has_type(self, mixed_charges):
        assert mixed_charges.has_type("type-x")
        assert not mixed_charges.has_type(CHARGE_TYPE_GIFT_CARD)

    def test_get_by_charge_qualifier(self, mixed_charges):
        qualifier = ChargeQualifier(type=CHARGE_TYPE_MAIN, reference="SJHHQWAXX6HJSDZ82")

        charge, found = mixed_charges.get_by_charge_qualifier(qualifier)

        assert found
        assert charge == main_charge(200, "SJHHQWAXX6HJSDZ82")
        assert mixed_charges.has_charge_qualifier(qualifier)
        assert qualifier in mixed_charges

    def test_get_by_charge_qualifier_forced(self):
        qualifier = ChargeQualifier(type=CHARGE_TYPE_MAIN, reference="SJHHQWAXX6HJSDZ82")
        charges = Charges()
        assert charges.get_by_charge_qualifier_forced(qualifier) == Charge()

        charges = charges.add_charge(main_charge(200, "SJHHQWAXX6HJSDZ82"))
        assert charges.get_by_charge_qualifier_forced(qualifier) == main_charge(200, "SJHHQWAXX6HJSDZ82")

    def test_items_and_iteration(self, mixed_charges):
        assert len(mixed_charges.items()) == len(mixed_charges) == 6
        assert sorted(c.type for c in mixed_charges) == sorted(c.type for c in mixed_charges.items())

    def test_iterated_charges_are_members(self, mixed_charges):
        assert all(charge in mixed_charges for charge in mixed_charges)

    def test_charge_membership_checks_content(self, mixed_charges):
        stored = main_charge(200, "ABC123")
        assert stored in mixed_charges
        assert main_charge(999, "ABC123") not in mixed_charges
        assert main_charge(200, "UNKNOWN") not in mixed_charges

    def test_multiply(self, mixed_charges):
        tripled = mixed_charges.multiply(3)
        assert tripled.get_by_type_forced("type-a").price == Price.from_int(1200, 1, "€")

    def test_equality(self):
        assert Charges([main_charge(1)]) == Charges().add_charge(main_charge(1))
        assert Charges([main_charge(1)]) != Charges([main_charge(2)])


class TestChargesProperties:
    """Property-based tests for the ledger."""

    @given(amounts=st.lists(st.integers(min_value=0, max_value=1_000_000), min_size=1, max_size=20))
    @settings(max_examples=200)
    def test_get_by_type_equals_sum_of_distinct_references(self, amounts):
        charges = Charges()
        for i, cents in enumerate(amounts):
            charges = charges.add_charge(Charge(
                type=CHARGE_TYPE_MAIN,
                reference=f"ref-{i}",
                price=Price.from_int(cents, 100, "EUR"),
            ))

        charge, found = charges.get_by_type(CHARGE_TYPE_MAIN)

        assert found
        assert charge.price == Price.from_int(sum(amounts), 100, "EUR")


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
