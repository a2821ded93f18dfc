"""Tenant accounts and login sessions"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from shopsync.models.base import Base


class Tenant(Base):
    """A Shopify store owner. Owns exactly one shop connection."""
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    # Shopify connection
    shop_domain = Column(String, unique=True, index=True, nullable=False)  # your-store.myshopify.com
    access_token = Column(String, nullable=True)  # Set by connect; sync refuses to run without it

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class TenantSession(Base):
    __tablename__ = "tenant_sessions"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
