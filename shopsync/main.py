"""
Shopify Insights Backend
Main FastAPI application
"""
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopsync import __version__
from shopsync.api import auth, health, insights, shopify
from shopsync.config import get_settings
from shopsync.connectors.shopify_connector import ShopifyConnector
from shopsync.middleware.auth_middleware import AuthMiddleware
from shopsync.models.base import Store
from shopsync.models.tenant import Tenant
from shopsync.services.shopify_sync_service import ShopifySyncService
from shopsync.utils.logger import log


def create_app(
    store: Optional[Store] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        store: Store to use; by default one is opened from settings.database_url
        http_transport: httpx transport for Shopify calls (tests pass a MockTransport)
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        log.info(f"Starting {settings.app_name} v{__version__}")
        log.info(f"Environment: {settings.environment}")

        owns_store = store is None
        app.state.store = store or Store(settings.database_url, echo=settings.database_echo)
        app.state.store.open()
        app.state.store.create_all()
        app.state.http_transport = http_transport

        def connector_factory(tenant: Tenant) -> ShopifyConnector:
            return ShopifyConnector(
                shop_domain=tenant.shop_domain,
                access_token=tenant.access_token,
                api_version=settings.shopify_api_version,
                page_size=settings.shopify_page_size,
                timeout=settings.shopify_request_timeout,
                min_request_interval=settings.shopify_min_request_interval,
                transport=http_transport,
            )

        app.state.sync_service = ShopifySyncService(
            app.state.store, settings=settings, connector_factory=connector_factory
        )
        log.info("Database initialized")

        yield

        if owns_store:
            app.state.store.close()
        log.info("Shutting down application")

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="""
    Multi-tenant Shopify data sync and insights

    - Register a store owner account and connect a Shopify Admin API token
    - Sync customers, products and orders (with line items) into a local store
    - Dashboard metrics: overview, orders by date, top customers, revenue trend
    """,
        lifespan=lifespan
    )

    # Token / cookie authentication
    app.add_middleware(AuthMiddleware)

    # CORS middleware (outermost, wraps auth)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(shopify.router)
    app.include_router(insights.router)

    @app.get("/")
    async def root():
        return {"status": "ok", "service": settings.app_name, "docs": "/docs"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("shopsync.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
