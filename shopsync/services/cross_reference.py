"""
Cross-reference resolution

Maps a Shopify id to the local row id it was reconciled into, within one
tenant. A miss is a normal outcome (guest checkout, deleted product, record
not synced yet) and resolves to NOT_FOUND rather than raising.
"""
from enum import Enum
from typing import Any, Optional

from sqlalchemy.orm import Session

from shopsync.models.shopify import Customer, Product
from shopsync.utils.helpers import external_id as to_external_id

NOT_FOUND = None


class EntityKind(str, Enum):
    CUSTOMER = "customer"
    PRODUCT = "product"
    ORDER = "order"


_RESOLVABLE = {
    EntityKind.CUSTOMER: Customer,
    EntityKind.PRODUCT: Product,
}


class CrossReferenceResolver:
    """Tenant-scoped lookup of already reconciled customers and products"""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def resolve(self, kind: EntityKind, external_id: Any) -> Optional[int]:
        """Return the local id for (tenant, kind, external_id), or NOT_FOUND."""
        model = _RESOLVABLE.get(kind)
        if model is None:
            raise ValueError(f"{kind} is not a resolvable entity kind")

        shopify_id = to_external_id(external_id)
        if shopify_id is None:
            return NOT_FOUND

        row = self.db.query(model.id).filter(
            model.tenant_id == self.tenant_id,
            model.shopify_id == shopify_id
        ).first()

        return row.id if row else NOT_FOUND

    def customer_id(self, external_id: Any) -> Optional[int]:
        return self.resolve(EntityKind.CUSTOMER, external_id)

    def product_id(self, external_id: Any) -> Optional[int]:
        return self.resolve(EntityKind.PRODUCT, external_id)
