"""
Shopify connection and data synchronization endpoints
"""
import asyncio
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopsync.api.auth import require_tenant
from shopsync.config import get_settings
from shopsync.connectors.shopify_connector import ShopifyConnector
from shopsync.exceptions import (
    ConnectorError,
    NotConnectedError,
    SyncFailedError,
    TransportError,
    UpstreamError,
)
from shopsync.models.base import get_db
from shopsync.models.tenant import Tenant
from shopsync.services import auth_service
from shopsync.services.shopify_sync_service import ShopifySyncService
from shopsync.utils.logger import log

router = APIRouter(prefix="/api/shopify", tags=["shopify"])

# One sync at a time per tenant within this process
_tenant_locks: Dict[int, asyncio.Lock] = {}


class ConnectRequest(BaseModel):
    accessToken: str | None = None


def _get_sync_service(request: Request) -> ShopifySyncService:
    return request.app.state.sync_service


def _failure_kind(error: SyncFailedError) -> str:
    if isinstance(error.cause, TransportError):
        return "shopify_unreachable"
    if isinstance(error.cause, UpstreamError):
        return "shopify_rejected"
    return "local_error"


@router.post("/connect")
async def connect_shopify(
    body: ConnectRequest,
    request: Request,
    verify: bool = Query(False, description="Check the token against Shopify before saving"),
    tenant: Tenant = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    """Store the tenant's Shopify Admin API access token."""
    if not body.accessToken:
        raise HTTPException(status_code=400, detail="Access token is required")

    shop_name = None
    if verify:
        settings = get_settings()
        connector = ShopifyConnector(
            shop_domain=tenant.shop_domain,
            access_token=body.accessToken,
            api_version=settings.shopify_api_version,
            timeout=settings.shopify_request_timeout,
            min_request_interval=0,
            transport=getattr(request.app.state, "http_transport", None),
        )
        try:
            shop_name = await connector.authenticate()
        except ConnectorError as e:
            log.warning(f"Shopify token check failed for tenant {tenant.email}: {e}")
            raise HTTPException(status_code=400, detail=f"Shopify rejected the access token: {e.message}")

    auth_service.connect_shop(db, tenant.id, body.accessToken)
    return {"message": "Shopify connected successfully", "shop": shop_name}


@router.post("/sync")
async def sync_all_data(request: Request, tenant: Tenant = Depends(require_tenant)):
    """
    Sync customers, products and orders from Shopify.

    Returns per-kind counts. A second request for the same store while a
    sync is running gets 409.
    """
    lock = _tenant_locks.setdefault(tenant.id, asyncio.Lock())
    if lock.locked():
        raise HTTPException(status_code=409, detail="A sync is already running for this store")

    async with lock:
        try:
            report = await _get_sync_service(request).sync_tenant(tenant.id)
        except NotConnectedError as e:
            raise HTTPException(status_code=400, detail=e.message)
        except SyncFailedError as e:
            return JSONResponse(
                status_code=502,
                content={
                    "error": "Failed to sync data from Shopify",
                    "reason": _failure_kind(e),
                    "stage": e.stage,
                    "cause": e.cause_type,
                    "details": str(e.cause),
                    "counts": e.counts,
                },
            )

    return {
        "message": "Data synced successfully",
        "counts": report.counts(),
        "skipped": report.skipped,
    }


@router.get("/sync/latest")
async def latest_sync(request: Request, tenant: Tenant = Depends(require_tenant)):
    """Outcome of the most recent sync for this store"""
    run = _get_sync_service(request).latest_run(tenant.id)
    if run is None:
        raise HTTPException(status_code=404, detail="No sync has run for this store yet")
    return run.to_dict()
