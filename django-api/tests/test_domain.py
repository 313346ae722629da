"""Unit tests for domain primitives.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from allocation.domain.errors import AccessCapacityExceededError, ConflictError, ErrorCode
from allocation.domain.models import Selection, ValidationResult
from allocation.domain.value_objects import AccessItemId, Capacity, EventId, Money


class TestMoney:
    """Tests for Money value object."""

    def test_money_accepts_positive_amount(self):
        assert Money(Decimal("10.50")).amount == Decimal("10.50")

    def test_money_accepts_zero(self):
        assert Money.zero().amount == Decimal("0")

    def test_money_rejects_negative_amount(self):
        with pytest.raises(ValueError):
            Money(Decimal("-1"))

    def test_money_coerces_strings_and_ints(self):
        assert Money("12.3").amount == Decimal("12.3")
        assert Money(5).amount == Decimal("5")

    def test_money_str_format(self):
        """Money string representation is formatted to 2 decimal places."""
        assert str(Money(Decimal("5"))) == "5.00"

    def test_money_adds_and_orders(self):
        total = Money(Decimal("1.25")) + Money(Decimal("2.75"))
        assert total == Money(Decimal("4.00"))
        assert min(Money(Decimal("3")), Money(Decimal("2"))) == Money(Decimal("2"))


class TestCapacity:
    """Tests for Capacity value object."""

    def test_capacity_accepts_zero(self):
        assert Capacity(0).value == 0

    def test_capacity_rejects_negative_value(self):
        with pytest.raises(ValueError):
            Capacity(-1)


class TestIdentifiers:
    """Tests for identifier value objects."""

    def test_from_string_valid_uuid(self):
        value = uuid4()
        assert EventId.from_string(str(value)).value == value

    def test_from_string_invalid_uuid(self):
        with pytest.raises(ValueError):
            AccessItemId.from_string("not-a-uuid")

    def test_str_is_the_uuid(self):
        value = uuid4()
        assert str(AccessItemId(value)) == str(value)


class TestSelection:
    def test_quantity_defaults_to_one(self):
        assert Selection(access_id=AccessItemId(uuid4())).quantity == 1

    def test_quantity_below_one_is_rejected(self):
        with pytest.raises(ValueError):
            Selection(access_id=AccessItemId(uuid4()), quantity=0)


class TestValidationResult:
    def test_valid_without_errors_even_with_warnings(self):
        assert ValidationResult(warnings=("Dinner is full, you will be placed on the waitlist",)).valid

    def test_invalid_with_errors(self):
        assert not ValidationResult(errors=("Dinner is full",)).valid


class TestDomainError:
    def test_carries_code_and_message(self):
        error = AccessCapacityExceededError()
        assert isinstance(error, ConflictError)
        assert error.code is ErrorCode.ACCESS_CAPACITY_EXCEEDED
        assert str(error) == "ACCESS_CAPACITY_EXCEEDED: No spots available"
