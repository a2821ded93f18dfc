"""
Sync orchestration tests against the fake Shopify API.

Covers the full pass, idempotency, tenant isolation, failure mid-pass
(no rollback of committed rows), skipped records and run history.
"""
import asyncio
from decimal import Decimal

import pytest

from fakes import (
    SHOP_A,
    SHOP_B,
    customer_record,
    line_item,
    make_tenant,
    order_record,
    product_record,
)
from shopsync.exceptions import (
    NotConnectedError,
    SyncFailedError,
    TenantNotFoundError,
    TransportError,
    UpstreamError,
)
from shopsync.models.shopify import Customer, Order, OrderItem, Product
from shopsync.models.sync_log import SyncRun
from shopsync.services.shopify_sync_service import ShopifySyncService, SyncStage


@pytest.fixture
def service(store, connector_factory):
    return ShopifySyncService(store, connector_factory=connector_factory)


def _seed_full_pass(fake, domain=SHOP_A):
    shop = fake.shop(domain)
    shop["customers"] = [customer_record("501", email="a@x.com", total_spent="42.50")]
    shop["products"] = [product_record("900", prices=("19.99",))]
    shop["orders"] = [order_record(
        "77", customer_id="501", total_price="19.98",
        line_items=[line_item("900", quantity=2, price="9.99")],
    )]


# ---------------------------------------------------------------------------
# Full pass
# ---------------------------------------------------------------------------

def test_full_pass_reconciles_and_links_everything(service, db, tenant, fake_shopify):
    _seed_full_pass(fake_shopify)

    report = asyncio.run(service.sync_tenant(tenant.id))

    assert report.counts() == {"customers": 1, "products": 1, "orders": 1}
    assert report.skipped == []

    customer = db.query(Customer).one()
    assert customer.shopify_id == "501"
    assert customer.email == "a@x.com"
    assert customer.total_spent == Decimal("42.50")

    product = db.query(Product).one()
    assert product.price == Decimal("19.99")

    order = db.query(Order).one()
    assert order.total_price == Decimal("19.98")
    assert order.customer_id == customer.id

    item = db.query(OrderItem).one()
    assert item.quantity == 2
    assert item.price == Decimal("9.99")
    assert item.product_id == product.id


def test_stages_run_in_dependency_order(service, tenant, fake_shopify):
    _seed_full_pass(fake_shopify)

    asyncio.run(service.sync_tenant(tenant.id))

    resources = [p.rsplit("/", 1)[-1] for p in fake_shopify.paths()]
    assert resources == ["customers.json", "products.json", "orders.json"]


def test_multi_page_collections_are_fully_synced(service, db, tenant, fake_shopify, connector_factory):
    connector_factory.page_size = 2
    fake_shopify.shop(SHOP_A)["customers"] = [customer_record(i) for i in range(1, 8)]

    report = asyncio.run(service.sync_tenant(tenant.id))

    assert report.customers == 7
    assert db.query(Customer).count() == 7
    assert len(fake_shopify.paths("customers")) == 4


# ---------------------------------------------------------------------------
# Idempotency and isolation
# ---------------------------------------------------------------------------

def test_second_sync_creates_no_duplicates(service, db, tenant, fake_shopify):
    _seed_full_pass(fake_shopify)

    asyncio.run(service.sync_tenant(tenant.id))
    report = asyncio.run(service.sync_tenant(tenant.id))

    assert report.counts() == {"customers": 1, "products": 1, "orders": 1}
    assert db.query(Customer).count() == 1
    assert db.query(Product).count() == 1
    assert db.query(Order).count() == 1
    assert db.query(OrderItem).count() == 1


def test_second_sync_overwrites_changed_fields(service, db, tenant, fake_shopify):
    _seed_full_pass(fake_shopify)
    asyncio.run(service.sync_tenant(tenant.id))

    shop = fake_shopify.shop(SHOP_A)
    shop["customers"][0]["email"] = "new@x.com"
    shop["customers"][0]["total_spent"] = None
    shop["orders"][0]["line_items"] = [line_item("900", quantity=5, price="9.99")]
    asyncio.run(service.sync_tenant(tenant.id))

    db.expire_all()
    customer = db.query(Customer).one()
    assert customer.email == "new@x.com"
    assert customer.total_spent == Decimal("0.00")
    assert [i.quantity for i in db.query(OrderItem).all()] == [5]


def test_tenants_with_overlapping_ids_stay_isolated(service, db, tenant, other_tenant, fake_shopify):
    fake_shopify.shop(SHOP_A)["customers"] = [customer_record("1001", email="a@alpha.com")]
    fake_shopify.shop(SHOP_B)["customers"] = [customer_record("1001", email="b@bravo.com")]
    fake_shopify.shop(SHOP_B)["orders"] = [order_record("77", customer_id="1001")]

    asyncio.run(service.sync_tenant(tenant.id))
    asyncio.run(service.sync_tenant(other_tenant.id))

    ours = db.query(Customer).filter(Customer.tenant_id == tenant.id).one()
    theirs = db.query(Customer).filter(Customer.tenant_id == other_tenant.id).one()
    assert ours.email == "a@alpha.com"
    assert theirs.email == "b@bravo.com"

    order = db.query(Order).one()
    assert order.tenant_id == other_tenant.id
    assert order.customer_id == theirs.id


# ---------------------------------------------------------------------------
# Skips and defaults
# ---------------------------------------------------------------------------

def test_order_with_unknown_customer_is_stored_unlinked(service, db, tenant, fake_shopify):
    fake_shopify.shop(SHOP_A)["orders"] = [order_record("77", customer_id="999", line_items=[line_item("404")])]

    report = asyncio.run(service.sync_tenant(tenant.id))

    assert report.orders == 1
    assert db.query(Order).one().customer_id is None
    assert db.query(OrderItem).one().product_id is None


def test_malformed_records_are_skipped_and_reported(service, db, tenant, fake_shopify):
    shop = fake_shopify.shop(SHOP_A)
    shop["products"] = [product_record("900"), product_record("901", variants=[]), product_record("902")]

    report = asyncio.run(service.sync_tenant(tenant.id))

    assert report.products == 2
    assert report.skipped == [
        {"kind": "product", "external_id": "901", "reason": "product has no variants"}
    ]
    assert sorted(p.shopify_id for p in db.query(Product).all()) == ["900", "902"]


def test_wrong_shaped_and_non_finite_records_are_skipped(service, db, tenant, fake_shopify):
    shop = fake_shopify.shop(SHOP_A)
    shop["customers"] = [customer_record("1", total_spent="NaN"), customer_record("2", total_spent="5.00")]
    shop["products"] = [
        product_record("900", variants=["bogus"]),
        product_record("901", images={"src": "https://cdn.example.com/901.png"}),
        product_record("902", prices=("Infinity",)),
        product_record("903"),
    ]
    shop["orders"] = [
        order_record("77", line_items=[line_item("903", quantity=2.9)]),
        order_record("78", line_items=[line_item("903")]),
    ]

    report = asyncio.run(service.sync_tenant(tenant.id))

    assert report.counts() == {"customers": 1, "products": 1, "orders": 1}
    assert [(s["kind"], s["external_id"]) for s in report.skipped] == [
        ("customer", "1"), ("product", "900"), ("product", "901"), ("product", "902"), ("order", "77"),
    ]
    assert db.query(Customer).one().shopify_id == "2"
    assert db.query(Order).one().shopify_id == "78"
    assert service.latest_run(tenant.id).status == "completed"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_failure_mid_pass_keeps_committed_rows(service, db, tenant, fake_shopify, connector_factory):
    connector_factory.page_size = 3
    fake_shopify.shop(SHOP_A)["customers"] = [
        customer_record(i, email=f"c{i}@x.com", total_spent=f"{i}.00") for i in range(1, 5)
    ]
    fake_shopify.fail("customers", 2, status=500)

    with pytest.raises(SyncFailedError) as exc_info:
        asyncio.run(service.sync_tenant(tenant.id))

    error = exc_info.value
    assert error.stage == SyncStage.FETCHING_CUSTOMERS.value
    assert isinstance(error.cause, UpstreamError)
    assert error.cause.status_code == 500
    assert error.counts == {"customers": 3, "products": 0, "orders": 0}

    rows = db.query(Customer).order_by(Customer.id).all()
    assert [(c.shopify_id, c.email, c.total_spent) for c in rows] == [
        ("1", "c1@x.com", Decimal("1.00")),
        ("2", "c2@x.com", Decimal("2.00")),
        ("3", "c3@x.com", Decimal("3.00")),
    ]
    # Products and orders were never requested
    assert fake_shopify.paths("products") == []
    assert fake_shopify.paths("orders") == []


def test_unreachable_shop_fails_with_transport_cause(service, tenant, fake_shopify):
    fake_shopify.unreachable = True

    with pytest.raises(SyncFailedError) as exc_info:
        asyncio.run(service.sync_tenant(tenant.id))

    assert isinstance(exc_info.value.cause, TransportError)
    assert exc_info.value.cause_type == "TransportError"


def test_failure_in_later_stage_reports_that_stage(service, tenant, fake_shopify):
    _seed_full_pass(fake_shopify)
    fake_shopify.fail("orders", 1, status=429)

    with pytest.raises(SyncFailedError) as exc_info:
        asyncio.run(service.sync_tenant(tenant.id))

    assert exc_info.value.stage == SyncStage.FETCHING_ORDERS.value
    assert exc_info.value.counts == {"customers": 1, "products": 1, "orders": 0}


def test_not_connected_tenant_makes_no_request(service, db, fake_shopify):
    tenant = make_tenant(db, "new@example.com", "new-shop.myshopify.com", access_token=None)

    with pytest.raises(NotConnectedError):
        asyncio.run(service.sync_tenant(tenant.id))

    assert fake_shopify.requests == []
    assert db.query(SyncRun).count() == 0


def test_unknown_tenant(service):
    with pytest.raises(TenantNotFoundError):
        asyncio.run(service.sync_tenant(12345))


# ---------------------------------------------------------------------------
# Run history
# ---------------------------------------------------------------------------

def test_completed_run_is_recorded(service, tenant, fake_shopify):
    _seed_full_pass(fake_shopify)
    asyncio.run(service.sync_tenant(tenant.id))

    run = service.latest_run(tenant.id)

    assert run.status == "completed"
    assert run.stage == SyncStage.COMPLETED.value
    assert run.to_dict()["counts"] == {"customers": 1, "products": 1, "orders": 1}
    assert run.completed_at is not None
    assert run.error_type is None


def test_failed_run_is_recorded(service, tenant, fake_shopify):
    fake_shopify.fail("customers", 1, status=401)

    with pytest.raises(SyncFailedError):
        asyncio.run(service.sync_tenant(tenant.id))

    run = service.latest_run(tenant.id)
    assert run.status == "failed"
    assert run.stage == SyncStage.FETCHING_CUSTOMERS.value
    assert run.error_type == "UpstreamError"
    assert "401" in run.error_message


def test_cancelled_run_is_recorded_as_failed(store, tenant):
    started = []

    class StalledConnector:
        async def customer_pages(self):
            started.append(True)
            await asyncio.Event().wait()
            yield

    service = ShopifySyncService(store, connector_factory=lambda t: StalledConnector())

    async def cancel_mid_fetch():
        task = asyncio.create_task(service.sync_tenant(tenant.id))
        while not started:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(cancel_mid_fetch())

    run = service.latest_run(tenant.id)
    assert run.status == "failed"
    assert run.stage == SyncStage.FETCHING_CUSTOMERS.value
    assert run.error_type == "CancelledError"
    assert run.completed_at is not None


def test_latest_run_is_per_tenant(service, tenant, other_tenant, fake_shopify):
    asyncio.run(service.sync_tenant(tenant.id))

    assert service.latest_run(tenant.id) is not None
    assert service.latest_run(other_tenant.id) is None
