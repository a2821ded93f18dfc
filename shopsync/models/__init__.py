"""Database models for the Shopify Insights backend"""

from shopsync.models.tenant import Tenant, TenantSession

from shopsync.models.shopify import (
    Customer,
    Product,
    Order,
    OrderItem
)

from shopsync.models.sync_log import SyncRun
