"""
Bundle coordinator and bundle-aware product writes.

Verifies:
- Bundle stock/price are derived at creation and on component changes
- Component deduction is all-or-nothing
- Deduct followed by revert restores every component
- Bundles cannot be nested, and components in use cannot be deleted
"""

import pytest

from stockroom.errors import InsufficientStockError, NotABundleError, NotFoundError
from stockroom.extensions import db
from stockroom.models import Product
from stockroom.services.bundle_service import deduct_components, revert_components
from stockroom.services.concurrency import run_in_transaction
from stockroom.services.products_service import create_product, delete_product, update_product
from stockroom.validation import ConflictError, ValidationError


@pytest.fixture
def kit(make_product, make_bundle):
    pen = make_product("Pen", stock=10, price_cents=500)
    pad = make_product("Pad", stock=3, price_cents=1000)
    bundle = make_bundle("Desk Kit", [(pen, 2), (pad, 1)])
    return bundle, pen, pad


def _stock(product_id):
    return db.session.get(Product, product_id).stock


class TestBundleDerivation:

    def test_created_bundle_has_derived_stock_and_price(self, kit):
        bundle, _, _ = kit
        assert bundle.is_bundle is True
        assert bundle.stock == 3
        assert bundle.price_cents == 1800
        assert bundle.supplier_name == "Derived from Components"
        assert [c.component_id for c in bundle.components] == [kit[1].id, kit[2].id]

    def test_bundle_payload_stock_and_price_ignored(self, admin, make_product, make_bundle):
        pen = make_product("Pen", stock=4, price_cents=100)
        bundle = make_bundle("Pen Pair", [(pen, 2)], stock=999, price_cents=1)
        assert bundle.stock == 2
        assert bundle.price_cents == 180

    def test_component_stock_edit_refreshes_bundle(self, admin, kit):
        bundle, _, pad = kit
        update_product(admin, pad.id, {"stock": 1})
        assert _stock(bundle.id) == 1

    def test_component_price_edit_refreshes_bundle(self, admin, kit):
        bundle, pen, _ = kit
        update_product(admin, pen.id, {"price_cents": 1000})
        assert db.session.get(Product, bundle.id).price_cents == 2700

    def test_replacing_components_rederives(self, admin, kit):
        bundle, pen, _ = kit
        updated = update_product(admin, bundle.id, {
            "bundle_components": [{"product_id": pen.id, "quantity": 5}],
        })
        assert updated.stock == 2
        assert updated.price_cents == 2250
        assert len(updated.components) == 1

    def test_nested_bundle_rejected(self, kit, make_bundle):
        bundle, _, _ = kit
        with pytest.raises(ValidationError, match="cannot be nested"):
            make_bundle("Mega Kit", [(bundle, 1)])

    def test_bundle_without_components_rejected(self, admin):
        with pytest.raises(ValidationError, match="at least one component"):
            create_product(admin, {"name": "Empty Kit", "is_bundle": True})

    def test_string_bundle_flag_is_treated_as_bundle(self, admin, db_session):
        with pytest.raises(ValidationError, match="at least one component"):
            create_product(admin, {"name": "Fake Kit", "stock": 50, "price_cents": 100, "is_bundle": "true"})
        assert db.session.query(Product).count() == 0

    def test_string_bundle_flag_derives_stock(self, admin, make_product):
        pen = make_product("Pen", stock=4, price_cents=100)
        bundle = create_product(admin, {
            "name": "Pen Pair",
            "stock": 50,
            "is_bundle": "TRUE",
            "bundle_components": [{"product_id": pen.id, "quantity": 2}],
        })
        assert bundle.is_bundle is True
        assert bundle.stock == 2

    def test_string_false_flag_creates_simple_product(self, admin, db_session):
        product = create_product(admin, {"name": "Plain", "stock": 5, "price_cents": 10, "is_bundle": "false"})
        assert product.is_bundle is False
        assert product.stock == 5

    def test_non_boolean_bundle_flag_rejected(self, admin, db_session):
        with pytest.raises(ValidationError, match="is_bundle must be a boolean"):
            create_product(admin, {"name": "Odd", "stock": 5, "price_cents": 10, "is_bundle": "yes"})

    def test_simple_product_cannot_carry_components(self, make_product):
        pen = make_product("Pen", stock=1, price_cents=1)
        with pytest.raises(ValidationError, match="only be provided for bundle"):
            make_product("Odd", stock=1, price_cents=1, bundle_components=[{"product_id": pen.id, "quantity": 1}])

    def test_is_bundle_cannot_change(self, admin, kit):
        _, pen, _ = kit
        with pytest.raises(ValidationError, match="cannot be changed"):
            update_product(admin, pen.id, {"is_bundle": True})

    def test_string_false_flag_on_bundle_cannot_change(self, admin, kit):
        bundle, _, _ = kit
        with pytest.raises(ValidationError, match="cannot be changed"):
            update_product(admin, bundle.id, {"is_bundle": "false"})

    def test_matching_string_flag_is_accepted(self, admin, kit):
        bundle, _, _ = kit
        updated = update_product(admin, bundle.id, {"is_bundle": "true", "description": "desk set"})
        assert updated.description == "desk set"

    def test_component_in_use_cannot_be_deleted(self, admin, kit):
        bundle, pen, _ = kit
        with pytest.raises(ConflictError) as exc_info:
            delete_product(admin, pen.id)
        assert exc_info.value.details["bundles"] == [{"id": bundle.id, "name": "desk kit"}]

    def test_deleting_bundle_frees_components(self, admin, kit):
        bundle, pen, _ = kit
        delete_product(admin, bundle.id)
        delete_product(admin, pen.id)
        assert db.session.get(Product, pen.id) is None


class TestDeductAndRevert:

    def test_deduct_takes_from_every_component(self, kit):
        bundle, pen, pad = kit
        run_in_transaction(lambda: deduct_components(bundle.id, 2))
        assert _stock(pen.id) == 6
        assert _stock(pad.id) == 1
        assert _stock(bundle.id) == 1

    def test_deduct_then_revert_restores(self, kit):
        bundle, pen, pad = kit
        run_in_transaction(lambda: deduct_components(bundle.id, 3))
        run_in_transaction(lambda: revert_components(bundle.id, 3))
        assert _stock(pen.id) == 10
        assert _stock(pad.id) == 3
        assert _stock(bundle.id) == 3

    def test_shortage_changes_nothing(self, kit):
        bundle, pen, pad = kit
        with pytest.raises(InsufficientStockError) as exc_info:
            run_in_transaction(lambda: deduct_components(bundle.id, 4))

        shortages = exc_info.value.details["shortages"]
        assert [s["product_id"] for s in shortages] == [pad.id]
        assert shortages[0]["required"] == 4
        assert _stock(pen.id) == 10
        assert _stock(pad.id) == 3

    def test_shortage_lists_every_short_component(self, kit):
        bundle, pen, pad = kit
        with pytest.raises(InsufficientStockError) as exc_info:
            run_in_transaction(lambda: deduct_components(bundle.id, 6))
        assert {s["product_id"] for s in exc_info.value.details["shortages"]} == {pen.id, pad.id}

    def test_simple_product_is_not_a_bundle(self, kit):
        _, pen, _ = kit
        with pytest.raises(NotABundleError):
            run_in_transaction(lambda: deduct_components(pen.id, 1))

    def test_unknown_bundle(self, db_session):
        with pytest.raises(NotFoundError):
            run_in_transaction(lambda: deduct_components(12345, 1))

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two"])
    def test_quantity_must_be_positive_integer(self, kit, quantity):
        bundle, _, _ = kit
        with pytest.raises(ValidationError):
            run_in_transaction(lambda: deduct_components(bundle.id, quantity))
