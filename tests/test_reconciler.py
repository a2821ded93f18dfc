"""
Reconciler tests: record mapping, upsert semantics, line item replacement.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from fakes import SHOP_B, customer_record, line_item, make_tenant, order_record, product_record
from shopsync.exceptions import MalformedRecordError
from shopsync.models.shopify import Customer, Order, OrderItem, Product
from shopsync.services.reconciler import (
    EntityReconciler,
    map_customer,
    map_line_item,
    map_order,
    map_product,
)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def test_customer_missing_total_spent_defaults_to_zero():
    record = customer_record(1)
    del record["total_spent"]

    assert map_customer(record)["total_spent"] == Decimal("0.00")
    assert map_customer(customer_record(2, total_spent=None))["total_spent"] == Decimal("0.00")


def test_customer_ids_are_stored_as_strings():
    assert map_customer(customer_record(1001))["shopify_id"] == "1001"


def test_customer_without_id_is_malformed():
    record = customer_record(1)
    del record["id"]

    with pytest.raises(MalformedRecordError) as exc_info:
        map_customer(record)

    assert exc_info.value.kind == "customer"


def test_customer_with_unparseable_spend_is_malformed():
    with pytest.raises(MalformedRecordError) as exc_info:
        map_customer(customer_record(7, total_spent="lots"))

    assert exc_info.value.external_id == "7"
    assert "total_spent" in exc_info.value.reason


def test_product_first_variant_wins():
    fields = map_product(product_record(900, prices=("10.00", "20.00")))

    assert fields["price"] == Decimal("10.00")
    assert fields["inventory_qty"] == 5
    assert fields["image_url"] == "https://cdn.example.com/900.png"
    assert fields["description"] == "<p>Nice</p>"


def test_product_without_variants_is_malformed():
    with pytest.raises(MalformedRecordError) as exc_info:
        map_product(product_record(900, variants=[]))

    assert exc_info.value.reason == "product has no variants"


def test_product_without_images_has_no_image_url():
    assert map_product(product_record(900, images=[]))["image_url"] is None


def test_product_variant_without_price_is_malformed():
    record = product_record(900)
    record["variants"][0]["price"] = None

    with pytest.raises(MalformedRecordError):
        map_product(record)


def test_order_missing_tax_defaults_to_zero():
    record = order_record(77)
    del record["total_tax"]
    del record["subtotal_price"]

    fields = map_order(record)

    assert fields["total_tax"] == Decimal("0.00")
    assert fields["subtotal_price"] == Decimal("0.00")


def test_order_date_is_normalized_to_utc():
    fields = map_order(order_record(77, created_at="2026-01-15T22:30:00-05:00"))
    assert fields["order_date"] == datetime(2026, 1, 16, 3, 30)


def test_order_requires_total_price_and_created_at():
    with pytest.raises(MalformedRecordError):
        map_order(order_record(77, total_price=None))
    with pytest.raises(MalformedRecordError):
        map_order(order_record(78, created_at=None))


def test_guest_order_has_no_customer_reference():
    assert map_order(order_record(77))["customer_shopify_id"] is None
    assert map_order(order_record(78, customer_id=501))["customer_shopify_id"] == "501"


def test_line_item_errors_are_reported_against_the_order():
    with pytest.raises(MalformedRecordError) as exc_info:
        map_line_item({"product_id": 900, "quantity": None, "price": "1.00"}, "77")

    assert exc_info.value.kind == "order"
    assert exc_info.value.external_id == "77"


@pytest.mark.parametrize("extra, reason", [
    ({"variants": ["bogus"]}, "first variant is not an object"),
    ({"variants": [None]}, "missing first variant"),
    ({"variants": {"price": "1.00"}}, "variants is not a list"),
    ({"images": {"src": "https://cdn.example.com/x.png"}}, "images is not a list"),
    ({"images": ["https://cdn.example.com/x.png"]}, "first image is not an object"),
    ({"title": {"en": "Hat"}}, "title: Not text: dict"),
])
def test_wrong_shaped_product_fields_are_malformed(extra, reason):
    with pytest.raises(MalformedRecordError) as exc_info:
        map_product(product_record(900, **extra))

    assert exc_info.value.external_id == "900"
    assert exc_info.value.reason == reason


def test_wrong_shaped_order_fields_are_malformed():
    with pytest.raises(MalformedRecordError) as exc_info:
        map_order(order_record(77, customer="501"))
    assert exc_info.value.reason == "customer is not an object"

    with pytest.raises(MalformedRecordError) as exc_info:
        map_order(order_record(77, customer={"id": {"nested": 1}}))
    assert exc_info.value.reason.startswith("customer id")


def test_wrong_shaped_customer_fields_are_malformed():
    with pytest.raises(MalformedRecordError) as exc_info:
        map_customer(customer_record(7, email=["a@x.com"]))
    assert exc_info.value.reason.startswith("email")

    with pytest.raises(MalformedRecordError):
        map_customer(customer_record(7, id=[7]))


@pytest.mark.parametrize("amount", ["NaN", "Infinity", "-inf", "sNaN"])
def test_non_finite_amounts_are_malformed(amount):
    with pytest.raises(MalformedRecordError) as exc_info:
        map_customer(customer_record(7, total_spent=amount))
    assert "total_spent" in exc_info.value.reason

    with pytest.raises(MalformedRecordError):
        map_product(product_record(900, prices=(amount,)))


def test_fractional_and_boolean_counts_are_malformed():
    with pytest.raises(MalformedRecordError):
        map_line_item(line_item(900, quantity=2.9), "77")
    with pytest.raises(MalformedRecordError):
        map_customer(customer_record(7, orders_count=True))

    assert map_line_item(line_item(900, quantity=3.0), "77")["quantity"] == 3


# ---------------------------------------------------------------------------
# Upserts
# ---------------------------------------------------------------------------

def test_reconcile_customer_inserts_then_updates(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)

    first = reconciler.reconcile_customer(customer_record(501, email="a@x.com", total_spent="42.50"))
    second = reconciler.reconcile_customer(customer_record(501, email="b@x.com", total_spent="50.00"))

    assert first.id == second.id
    assert db.query(Customer).count() == 1
    row = db.query(Customer).one()
    assert row.email == "b@x.com"
    assert row.total_spent == Decimal("50.00")
    assert (reconciler.created, reconciler.updated) == (1, 1)


def test_reconcile_is_scoped_to_tenant(db, tenant):
    other = make_tenant(db, "bravo@example.com", SHOP_B)

    a = EntityReconciler(db, tenant.id).reconcile_customer(customer_record(1001, email="a@x.com"))
    b = EntityReconciler(db, other.id).reconcile_customer(customer_record(1001, email="b@x.com"))

    assert a.id != b.id
    assert db.get(Customer, a.id).email == "a@x.com"
    assert db.get(Customer, b.id).tenant_id == other.id


def test_reconcile_order_resolves_customer_and_products(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)
    customer = reconciler.reconcile_customer(customer_record(501))
    product = reconciler.reconcile_product(product_record(900))

    order = reconciler.reconcile_order(order_record(
        77, customer_id=501, line_items=[line_item(900, quantity=2, price="9.99")]
    ))

    assert order.customer_id == customer.id
    item = db.query(OrderItem).one()
    assert item.order_id == order.id
    assert item.product_id == product.id
    assert item.quantity == 2
    assert item.price == Decimal("9.99")
    assert item.tenant_id == tenant.id


def test_unknown_references_are_stored_as_null(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)

    order = reconciler.reconcile_order(order_record(
        77, customer_id=999, line_items=[line_item(12345), line_item(None)]
    ))

    assert order.customer_id is None
    assert [i.product_id for i in db.query(OrderItem).all()] == [None, None]


def test_order_is_linked_once_its_customer_arrives(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)
    record = order_record(77, customer_id=501)

    assert reconciler.reconcile_order(record).customer_id is None
    customer = reconciler.reconcile_customer(customer_record(501))
    assert reconciler.reconcile_order(record).customer_id == customer.id


def test_line_items_are_replaced_not_duplicated(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)
    record = order_record(77, line_items=[line_item(900), line_item(901)])

    reconciler.reconcile_order(record)
    reconciler.reconcile_order(record)
    assert db.query(OrderItem).count() == 2

    record["line_items"] = [line_item(900, quantity=3)]
    reconciler.reconcile_order(record)
    assert [i.quantity for i in db.query(OrderItem).all()] == [3]
    assert db.query(Order).count() == 1


def test_malformed_line_item_leaves_order_untouched(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)
    reconciler.reconcile_order(order_record(77, total_price="10.00", line_items=[line_item(900)]))

    bad = order_record(77, total_price="99.00", line_items=[line_item(900), {"product_id": 1, "quantity": "x"}])
    with pytest.raises(MalformedRecordError):
        reconciler.reconcile_order(bad)

    order = db.query(Order).one()
    assert order.total_price == Decimal("10.00")
    assert db.query(OrderItem).count() == 1


def test_line_items_must_be_a_list(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)

    with pytest.raises(MalformedRecordError) as exc_info:
        reconciler.reconcile_order(order_record(77, line_items={"0": line_item(900)}))

    assert exc_info.value.reason == "line_items is not a list"
    assert db.query(Order).count() == 0


def test_reconcile_line_items_without_commit(db, tenant):
    reconciler = EntityReconciler(db, tenant.id)
    product = reconciler.reconcile_product(product_record(900))
    order = reconciler.reconcile_order(order_record(77, line_items=[line_item(900)]))

    items = reconciler.reconcile_line_items(order, [line_item(900, quantity=4), line_item(555)])
    db.rollback()

    assert [i.quantity for i in items] == [4, 1]
    assert items[0].product_id == product.id
    # Rolled back: the committed item is still the original one
    assert [i.quantity for i in db.query(OrderItem).all()] == [1]


def test_failed_write_is_rolled_back(db, tenant, monkeypatch):
    reconciler = EntityReconciler(db, tenant.id)
    reconciler.reconcile_product(product_record(900))

    def broken_commit():
        raise RuntimeError("disk full")

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(RuntimeError):
        reconciler.reconcile_product(product_record(901))
    monkeypatch.undo()

    assert [p.shopify_id for p in db.query(Product).all()] == ["900"]
