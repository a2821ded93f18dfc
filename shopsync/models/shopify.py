"""
Shopify Data Models

Local, tenant-scoped copies of the customers, products and orders pulled
from the Shopify Admin API. (tenant_id, shopify_id) is unique for customers,
products and orders; reconciliation upserts on it.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from shopsync.models.base import Base


class Customer(Base):
    """
    Shopify customers

    Synced from Shopify Admin API: GET /admin/api/{version}/customers.json
    """
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_customers_tenant_shopify_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    shopify_id = Column(String(50), nullable=False)

    email = Column(String, index=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)

    # Denormalized by Shopify, not recomputed locally
    total_spent = Column(Numeric(12, 2), default=0, nullable=False)
    orders_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = relationship("Order", back_populates="customer")


class Product(Base):
    """
    Shopify products catalog

    Only the first variant is represented (price, compare-at price, inventory).
    """
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_products_tenant_shopify_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    shopify_id = Column(String(50), nullable=False)

    title = Column(String, nullable=True)
    description = Column(Text, nullable=True)  # body_html
    price = Column(Numeric(12, 2), nullable=False)
    compare_at_price = Column(Numeric(12, 2), nullable=True)
    inventory_qty = Column(Integer, default=0, nullable=False)
    image_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Order(Base):
    """
    Shopify orders

    Synced from Shopify Admin API: GET /admin/api/{version}/orders.json?status=any
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_orders_tenant_shopify_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    shopify_id = Column(String(50), nullable=False)

    # Null for guest orders or customers not synced locally
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)

    order_number = Column(Integer, index=True, nullable=True)
    total_price = Column(Numeric(12, 2), nullable=False)
    subtotal_price = Column(Numeric(12, 2), default=0, nullable=False)
    total_tax = Column(Numeric(12, 2), default=0, nullable=False)
    financial_status = Column(String, index=True, nullable=True)  # paid, pending, refunded, ...
    fulfillment_status = Column(String, nullable=True)  # fulfilled, partial, null
    order_date = Column(DateTime, index=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """
    Order line items. No Shopify id is kept; the items of an order are
    replaced as a whole each time the order is reconciled.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
