"""
Exception types for the sync engine and the API around it.

Connector failures (transport vs. upstream rejection) and local data
anomalies are kept apart so callers can tell "Shopify unreachable" from
"Shopify refused the request" from "a record we could not map".
"""
from typing import Any, Dict, List, Optional


class ShopSyncError(Exception):
    """Base exception for all shopsync errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ============================================================================
# Connector Errors
# ============================================================================


class ConnectorError(ShopSyncError):
    """Base exception for external platform request failures."""

    pass


class TransportError(ConnectorError):
    """Raised when the external platform cannot be reached."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url


class UpstreamError(ConnectorError):
    """Raised when the external platform answers with a non-success status."""

    def __init__(self, status_code: int, reason: str, url: Optional[str] = None):
        super().__init__(
            f"Shopify API error: {status_code} {reason}",
            {"status_code": status_code, "url": url} if url else {"status_code": status_code},
        )
        self.status_code = status_code
        self.reason = reason
        self.url = url


# ============================================================================
# Sync Errors
# ============================================================================


class MalformedRecordError(ShopSyncError):
    """Raised when an external record breaks an assumed invariant."""

    def __init__(self, kind: str, external_id: Any, reason: str):
        super().__init__(
            f"Malformed {kind} record {external_id}: {reason}",
            {"kind": kind, "external_id": external_id},
        )
        self.kind = kind
        self.external_id = external_id
        self.reason = reason


class TenantNotFoundError(ShopSyncError):
    """Raised when a tenant id does not exist."""

    def __init__(self, tenant_id: int):
        super().__init__(f"Tenant not found: {tenant_id}", {"tenant_id": tenant_id})
        self.tenant_id = tenant_id


class NotConnectedError(ShopSyncError):
    """Raised when a sync is requested before an access token was configured."""

    def __init__(self, tenant_id: int):
        super().__init__(
            "Shopify access token not configured. Please connect your store first.",
            {"tenant_id": tenant_id},
        )
        self.tenant_id = tenant_id


class SyncFailedError(ShopSyncError):
    """Raised when a sync job stops at a stage. Counts are diagnostic only."""

    def __init__(self, stage: str, cause: Exception, counts: Optional[Dict[str, int]] = None):
        super().__init__(
            f"Sync failed during {stage}: {cause}",
            {"stage": stage, "cause_type": type(cause).__name__},
        )
        self.stage = stage
        self.cause = cause
        self.counts = counts or {}

    @property
    def cause_type(self) -> str:
        return type(self.cause).__name__


# ============================================================================
# Account Errors
# ============================================================================


class RegistrationError(ShopSyncError):
    """Raised when a tenant cannot be registered."""

    def __init__(self, errors: List[str], conflict: bool = False):
        super().__init__("; ".join(errors), {"errors": errors})
        self.errors = errors
        self.conflict = conflict
