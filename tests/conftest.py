"""
Shared fixtures: an in-memory store, seeded tenants and the fake Shopify API.
"""
import os

# Before any shopsync import: settings and the logger are configured at import time
os.environ["LOG_DIR"] = ""
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SHOPIFY_MIN_REQUEST_INTERVAL"] = "0"

import pytest  # noqa: E402

from fakes import API_VERSION, SHOP_A, SHOP_B, FakeShopify, make_tenant  # noqa: E402
from shopsync.connectors.shopify_connector import ShopifyConnector  # noqa: E402
from shopsync.models.base import Store  # noqa: E402
from shopsync.models.tenant import Tenant  # noqa: E402


@pytest.fixture
def store():
    store = Store("sqlite://")
    store.open()
    store.create_all()
    yield store
    store.close()


@pytest.fixture
def db(store):
    session = store.session()
    yield session
    session.close()


@pytest.fixture
def tenant(db):
    return make_tenant(db, "alpha@example.com", SHOP_A)


@pytest.fixture
def other_tenant(db):
    return make_tenant(db, "bravo@example.com", SHOP_B)


@pytest.fixture
def fake_shopify():
    return FakeShopify()


@pytest.fixture
def connector_factory(fake_shopify):
    """Build connectors against the fake API. page_size is adjustable per test."""

    class Factory:
        page_size = 250

        def __call__(self, tenant: Tenant) -> ShopifyConnector:
            return ShopifyConnector(
                shop_domain=tenant.shop_domain,
                access_token=tenant.access_token,
                api_version=API_VERSION,
                page_size=self.page_size,
                min_request_interval=0,
                transport=fake_shopify.transport,
            )

    return Factory()
