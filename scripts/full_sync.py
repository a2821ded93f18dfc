#!/usr/bin/env python3
"""
Run a Shopify sync from the command line.

Syncs customers, products and orders for one tenant, or for every tenant
that has connected a store. Tenants are synced one after another.

Usage:
    python scripts/full_sync.py --email owner@example.com
    python scripts/full_sync.py --all
"""
import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shopsync.config import get_settings
from shopsync.exceptions import ShopSyncError
from shopsync.models.base import Store
from shopsync.models.tenant import Tenant
from shopsync.services.shopify_sync_service import ShopifySyncService
from shopsync.utils.logger import log


def select_tenants(store: Store, email: str | None, all_tenants: bool) -> list[tuple[int, str]]:
    db = store.session()
    try:
        query = db.query(Tenant).filter(Tenant.is_active.is_(True))
        if email:
            query = query.filter(Tenant.email == email.lower().strip())
        elif all_tenants:
            query = query.filter(Tenant.access_token.isnot(None))
        return [(t.id, t.email) for t in query.order_by(Tenant.id).all()]
    finally:
        db.close()


async def run(email: str | None, all_tenants: bool) -> int:
    settings = get_settings()
    failures = 0

    with Store(settings.database_url, echo=settings.database_echo) as store:
        store.create_all()
        tenants = select_tenants(store, email, all_tenants)
        if not tenants:
            print("No matching tenants")
            return 1

        service = ShopifySyncService(store, settings=settings)
        for tenant_id, tenant_email in tenants:
            print(f"\nSyncing {tenant_email}...")
            try:
                report = await service.sync_tenant(tenant_id)
            except ShopSyncError as e:
                failures += 1
                print(f"  FAILED: {e}")
                continue

            counts = report.counts()
            print(
                f"  customers={counts['customers']} products={counts['products']} "
                f"orders={counts['orders']} skipped={len(report.skipped)} "
                f"({report.duration_seconds:.1f}s)"
            )

    log.info(f"Command line sync finished: {len(tenants) - failures}/{len(tenants)} tenants succeeded")
    return 1 if failures else 0


def main():
    parser = argparse.ArgumentParser(description="Sync Shopify data into the local store")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--email", help="Tenant account email")
    group.add_argument("--all", action="store_true", help="Every tenant with a connected store")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.email, args.all)))


if __name__ == "__main__":
    main()
