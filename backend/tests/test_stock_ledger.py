"""
Bundle arithmetic and composition rules.

Pure functions only: no app, no database.
"""

import pytest

from stockroom.services.stock_ledger import (
    ComponentSpec,
    StockSnapshot,
    apply_discount,
    compute_bundle_aggregate,
    normalize_components,
    validate_bundle_components,
)
from stockroom.validation import ValidationError


def _lookup(*snapshots):
    by_id = {s.product_id: s for s in snapshots}
    return by_id.get


PEN = StockSnapshot(product_id=1, stock=10, price_cents=500, name="pen")
PAD = StockSnapshot(product_id=2, stock=3, price_cents=1000, name="pad")
KIT = StockSnapshot(product_id=3, stock=0, price_cents=0, is_bundle=True, name="kit")


class TestComputeBundleAggregate:

    def test_stock_is_min_buildable_and_price_is_discounted_sum(self):
        aggregate = compute_bundle_aggregate(
            [ComponentSpec(1, 2), ComponentSpec(2, 1)],
            _lookup(PEN, PAD),
            discount_percent=10,
        )
        assert aggregate.stock == 3
        assert aggregate.price_cents == 1800

    def test_floor_division_per_component(self):
        aggregate = compute_bundle_aggregate(
            [ComponentSpec(1, 3)],
            _lookup(PEN),
            discount_percent=10,
        )
        assert aggregate.stock == 3
        assert aggregate.price_cents == 1350

    def test_missing_component_forces_zero_stock(self):
        aggregate = compute_bundle_aggregate(
            [ComponentSpec(1, 1), ComponentSpec(99, 1)],
            _lookup(PEN),
            discount_percent=10,
        )
        assert aggregate.stock == 0

    def test_empty_bundle_has_zero_stock(self):
        aggregate = compute_bundle_aggregate([], _lookup(), discount_percent=10)
        assert aggregate.stock == 0
        assert aggregate.price_cents == 0

    def test_zero_discount_keeps_full_price(self):
        aggregate = compute_bundle_aggregate([ComponentSpec(2, 2)], _lookup(PAD), discount_percent=0)
        assert aggregate.price_cents == 2000


@pytest.mark.parametrize(
    "total,discount,expected",
    [
        (2000, 10, 1800),
        (5, 10, 5),      # 4.5 rounds half-up
        (15, 10, 14),    # 13.5 rounds half-up
        (999, 0, 999),
        (100, 100, 0),
    ],
)
def test_apply_discount_rounds_half_up(total, discount, expected):
    assert apply_discount(total, discount) == expected


class TestValidateBundleComponents:

    def test_valid_components_pass_through(self):
        specs = [ComponentSpec(1, 2), ComponentSpec(2, 1)]
        assert validate_bundle_components(specs, _lookup(PEN, PAD)) == specs

    def test_empty_rejected(self):
        with pytest.raises(ValidationError, match="at least one component"):
            validate_bundle_components([], _lookup(PEN))

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError, match="at least 1"):
            validate_bundle_components([ComponentSpec(1, 0)], _lookup(PEN))

    def test_self_reference_rejected(self):
        with pytest.raises(ValidationError, match="cannot contain itself"):
            validate_bundle_components([ComponentSpec(1, 1)], _lookup(PEN), exclude_product_id=1)

    def test_duplicate_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            validate_bundle_components([ComponentSpec(1, 1), ComponentSpec(1, 2)], _lookup(PEN))

    def test_unknown_component_rejected(self):
        with pytest.raises(ValidationError, match="not found") as exc_info:
            validate_bundle_components([ComponentSpec(42, 1)], _lookup(PEN))
        assert exc_info.value.details == {"product_id": 42}

    def test_nested_bundle_rejected(self):
        with pytest.raises(ValidationError, match="cannot be nested"):
            validate_bundle_components([ComponentSpec(3, 1)], _lookup(PEN, KIT))

    def test_quantity_checked_before_existence(self):
        with pytest.raises(ValidationError, match="at least 1"):
            validate_bundle_components([ComponentSpec(42, 0)], _lookup())


class TestNormalizeComponents:

    def test_accepts_product_alias(self):
        assert normalize_components([{"product": "7", "quantity": 2}]) == [ComponentSpec(7, 2)]

    def test_none_is_empty(self):
        assert normalize_components(None) == []

    def test_rejects_non_list(self):
        with pytest.raises(ValidationError, match="must be a list"):
            normalize_components({"product_id": 1})

    def test_requires_quantity(self):
        with pytest.raises(ValidationError, match="quantity is required"):
            normalize_components([{"product_id": 1}])

    def test_rejects_decimal_quantity(self):
        with pytest.raises(ValidationError):
            normalize_components([{"product_id": 1, "quantity": 1.5}])
