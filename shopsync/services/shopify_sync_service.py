"""
Shopify Synchronization Service

Pulls customers, products and orders for one tenant and reconciles them
into the local store, in dependency order:

    customers -> products -> orders (+ line items)

Orders resolve their customer and their line items' products against rows
reconciled earlier in the same job, so the stages never overlap.

The first connector or store error fails the whole job. Rows committed
before the failure stay in place (no job-wide transaction). Records that
cannot be mapped are skipped and reported instead.

Callers must not run two syncs for the same tenant at once.
"""
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from shopsync.config import Settings, get_settings
from shopsync.connectors.shopify_connector import ShopifyConnector
from shopsync.exceptions import (
    MalformedRecordError,
    NotConnectedError,
    SyncFailedError,
    TenantNotFoundError,
)
from shopsync.models.base import Store
from shopsync.models.sync_log import SyncRun
from shopsync.models.tenant import Tenant
from shopsync.services.reconciler import EntityReconciler
from shopsync.utils.logger import log


class SyncStage(str, Enum):
    NOT_STARTED = "not_started"
    FETCHING_CUSTOMERS = "fetching_customers"
    RECONCILING_CUSTOMERS = "reconciling_customers"
    FETCHING_PRODUCTS = "fetching_products"
    RECONCILING_PRODUCTS = "reconciling_products"
    FETCHING_ORDERS = "fetching_orders"
    RECONCILING_ORDERS = "reconciling_orders"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncStage.COMPLETED, SyncStage.FAILED)


@dataclass(frozen=True)
class StagePlan:
    kind: str  # report counter
    fetching: SyncStage
    reconciling: SyncStage
    pages: str  # connector method yielding pages
    reconcile: str  # EntityReconciler method


# Order matters: orders resolve against customers and products
SYNC_PLAN = (
    StagePlan("customers", SyncStage.FETCHING_CUSTOMERS, SyncStage.RECONCILING_CUSTOMERS,
              "customer_pages", "reconcile_customer"),
    StagePlan("products", SyncStage.FETCHING_PRODUCTS, SyncStage.RECONCILING_PRODUCTS,
              "product_pages", "reconcile_product"),
    StagePlan("orders", SyncStage.FETCHING_ORDERS, SyncStage.RECONCILING_ORDERS,
              "order_pages", "reconcile_order"),
)


@dataclass
class SyncReport:
    """Per-kind counts of records reconciled by one job"""
    tenant_id: int
    customers: int = 0
    products: int = 0
    orders: int = 0
    skipped: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def increment(self, kind: str):
        setattr(self, kind, getattr(self, kind) + 1)

    def skip(self, error: MalformedRecordError):
        self.skipped.append({
            "kind": error.kind,
            "external_id": error.external_id,
            "reason": error.reason,
        })

    def counts(self) -> Dict[str, int]:
        return {
            "customers": self.customers,
            "products": self.products,
            "orders": self.orders,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": self.counts(),
            "skipped": self.skipped,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


ConnectorFactory = Callable[[Tenant], ShopifyConnector]


class SyncJob:
    """
    A single sync invocation for one tenant.

    Walks NOT_STARTED -> FETCHING_x -> RECONCILING_x ... -> COMPLETED, or
    FAILED from any non-terminal stage.
    """

    def __init__(self, db: Session, tenant: Tenant, connector: ShopifyConnector):
        self.db = db
        self.tenant_id = tenant.id
        self.tenant_email = tenant.email  # Rows expire on every per-record commit
        self.log = log.bind(tenant=self.tenant_email, sync=True)
        self.connector = connector
        self.reconciler = EntityReconciler(db, tenant.id)
        self.report = SyncReport(tenant_id=tenant.id)
        self.stage = SyncStage.NOT_STARTED
        self.failed_stage: Optional[SyncStage] = None

    def _transition(self, stage: SyncStage):
        if self.stage.is_terminal:
            raise RuntimeError(f"Sync job already {self.stage.value}")
        self.log.debug(f"Sync stage: {self.stage.value} -> {stage.value}")
        self.stage = stage

    async def run(self) -> SyncReport:
        self.report.started_at = datetime.utcnow()
        start_time = time.time()

        try:
            for plan in SYNC_PLAN:
                await self._run_stage(plan)
        except Exception as e:
            failed_stage = self._fail(start_time)
            self.log.error(
                f"Shopify sync failed for tenant {self.tenant_email} during {failed_stage.value}: "
                f"{type(e).__name__}: {e} (so far: {self.report.counts()})"
            )
            raise SyncFailedError(failed_stage.value, e, self.report.counts()) from e
        except BaseException as e:
            # Cancellation and interrupts propagate unwrapped
            failed_stage = self._fail(start_time)
            self.log.warning(
                f"Shopify sync for tenant {self.tenant_email} interrupted during {failed_stage.value}: "
                f"{type(e).__name__} (so far: {self.report.counts()})"
            )
            raise

        self._transition(SyncStage.COMPLETED)
        self._finish(start_time)
        self.log.info(
            f"Sync completed for tenant {self.tenant_email}: {self.report.counts()} "
            f"({len(self.report.skipped)} skipped, {self.report.duration_seconds:.1f}s)"
        )
        return self.report

    async def _run_stage(self, plan: StagePlan):
        """Fetch one page, reconcile every record in it, repeat while there are more pages."""
        self.log.info(f"Syncing {plan.kind}")
        reconcile = getattr(self.reconciler, plan.reconcile)

        self._transition(plan.fetching)
        async with aclosing(getattr(self.connector, plan.pages)()) as pages:
            async for page in pages:
                self._transition(plan.reconciling)
                for record in page.records:
                    try:
                        reconcile(record)
                    except MalformedRecordError as e:
                        self.log.warning(f"Skipping {e.kind} record {e.external_id}: {e.reason}")
                        self.report.skip(e)
                        continue
                    self.report.increment(plan.kind)

                if page.has_next:
                    self._transition(plan.fetching)

        self.log.info(f"Synced {getattr(self.report, plan.kind)} {plan.kind}")

    def _fail(self, start_time: float) -> SyncStage:
        self.failed_stage = self.stage
        self._transition(SyncStage.FAILED)
        self._finish(start_time)
        return self.failed_stage

    def _finish(self, start_time: float):
        self.report.completed_at = datetime.utcnow()
        self.report.duration_seconds = time.time() - start_time


class ShopifySyncService:
    """Runs sync jobs against a store"""

    def __init__(
        self,
        store: Store,
        settings: Optional[Settings] = None,
        connector_factory: Optional[ConnectorFactory] = None
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.connector_factory = connector_factory or self._default_connector

    def _default_connector(self, tenant: Tenant) -> ShopifyConnector:
        return ShopifyConnector(
            shop_domain=tenant.shop_domain,
            access_token=tenant.access_token,
            api_version=self.settings.shopify_api_version,
            page_size=self.settings.shopify_page_size,
            timeout=self.settings.shopify_request_timeout,
            min_request_interval=self.settings.shopify_min_request_interval,
        )

    async def sync_tenant(self, tenant_id: int) -> SyncReport:
        """
        Sync customers, products and orders for one tenant

        Raises:
            TenantNotFoundError: unknown tenant
            NotConnectedError: no access token; nothing is fetched
            SyncFailedError: the job stopped at a stage

        A cancelled job is recorded as failed and the cancellation propagates.
        """
        db = self.store.session()
        try:
            tenant = db.get(Tenant, tenant_id)
            if tenant is None:
                raise TenantNotFoundError(tenant_id)
            if not tenant.access_token:
                raise NotConnectedError(tenant_id)

            connector = self.connector_factory(tenant)
            job = SyncJob(db, tenant, connector)
            run = self._start_run(db, tenant_id)

            try:
                report = await job.run()
            except SyncFailedError as e:
                self._finish_run(db, run, job, failure=e)
                raise
            except BaseException as e:
                stage = job.failed_stage or job.stage
                self._finish_run(db, run, job, failure=SyncFailedError(stage.value, e, job.report.counts()))
                raise

            self._finish_run(db, run, job)
            return report
        finally:
            db.close()

    def latest_run(self, tenant_id: int) -> Optional[SyncRun]:
        db = self.store.session()
        try:
            return db.query(SyncRun).filter(
                SyncRun.tenant_id == tenant_id
            ).order_by(desc(SyncRun.started_at), desc(SyncRun.id)).first()
        finally:
            db.close()

    def _start_run(self, db: Session, tenant_id: int) -> SyncRun:
        run = SyncRun(tenant_id=tenant_id, status="running", stage=SyncStage.NOT_STARTED.value)
        db.add(run)
        db.commit()
        return run

    def _finish_run(self, db: Session, run: SyncRun, job: SyncJob, failure: Optional[SyncFailedError] = None):
        """Record the outcome. Status tracking never masks the sync result."""
        report = job.report
        try:
            run.status = "failed" if failure else "completed"
            run.stage = failure.stage if failure else job.stage.value
            run.customers_count = report.customers
            run.products_count = report.products
            run.orders_count = report.orders
            run.skipped_count = len(report.skipped)
            run.completed_at = report.completed_at
            run.duration_seconds = report.duration_seconds
            if failure:
                run.error_type = failure.cause_type
                run.error_message = str(failure.cause)[:500] or failure.cause_type
            db.commit()
        except Exception as e:
            db.rollback()
            log.error(f"Error recording sync run for tenant {report.tenant_id}: {e}")
