"""
Entity reconciliation

Maps Shopify records onto the local schema and upserts them by
(tenant_id, shopify_id). Every sync overwrites all mapped fields
(last write wins). Each record is committed on its own; an order commits
together with its line items.
"""
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from shopsync.exceptions import MalformedRecordError
from shopsync.models.base import Base
from shopsync.models.shopify import Customer, Product, Order, OrderItem
from shopsync.services.cross_reference import CrossReferenceResolver, EntityKind
from shopsync.utils.helpers import to_decimal, to_int, parse_timestamp, external_id, text
from shopsync.utils.logger import log

ZERO = Decimal("0.00")


# ────────────────────────────────────────────
# RECORD MAPPING
# ────────────────────────────────────────────


def _require_id(kind: str, record: Any) -> str:
    if not isinstance(record, dict):
        raise MalformedRecordError(kind, None, f"expected an object, got {type(record).__name__}")
    shopify_id = _parse(kind, None, "id", external_id, record.get("id"))
    if shopify_id is None:
        raise MalformedRecordError(kind, None, "missing id")
    return shopify_id


def _parse(kind: str, shopify_id: Optional[str], name: str, parser: Callable, value: Any, **kwargs):
    try:
        return parser(value, **kwargs)
    except ValueError as e:
        raise MalformedRecordError(kind, shopify_id, f"{name}: {e}") from e


def _required(kind: str, shopify_id: Optional[str], name: str, value: Any) -> Any:
    if value is None:
        raise MalformedRecordError(kind, shopify_id, f"missing {name}")
    return value


def _list(kind: str, shopify_id: str, name: str, value: Any) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedRecordError(kind, shopify_id, f"{name} is not a list")
    return value


def _object(kind: str, shopify_id: str, name: str, value: Any) -> Optional[Dict[str, Any]]:
    if value is None or isinstance(value, dict):
        return value
    raise MalformedRecordError(kind, shopify_id, f"{name} is not an object")


def map_customer(record: Dict[str, Any]) -> Dict[str, Any]:
    kind = EntityKind.CUSTOMER.value
    shopify_id = _require_id(kind, record)
    return {
        "shopify_id": shopify_id,
        "email": _parse(kind, shopify_id, "email", text, record.get("email")),
        "first_name": _parse(kind, shopify_id, "first_name", text, record.get("first_name")),
        "last_name": _parse(kind, shopify_id, "last_name", text, record.get("last_name")),
        "phone": _parse(kind, shopify_id, "phone", text, record.get("phone")),
        "total_spent": _parse(kind, shopify_id, "total_spent", to_decimal, record.get("total_spent"), default=ZERO),
        "orders_count": _parse(kind, shopify_id, "orders_count", to_int, record.get("orders_count"), default=0),
    }


def map_product(record: Dict[str, Any]) -> Dict[str, Any]:
    """Only the first variant and the first image are kept."""
    kind = EntityKind.PRODUCT.value
    shopify_id = _require_id(kind, record)

    variants = _list(kind, shopify_id, "variants", record.get("variants"))
    if not variants:
        raise MalformedRecordError(kind, shopify_id, "product has no variants")
    variant = _required(kind, shopify_id, "first variant", _object(kind, shopify_id, "first variant", variants[0]))

    images = _list(kind, shopify_id, "images", record.get("images"))
    image = _object(kind, shopify_id, "first image", images[0]) if images else None
    image_url = _parse(kind, shopify_id, "image src", text, image.get("src")) if image else None

    price = _parse(kind, shopify_id, "price", to_decimal, variant.get("price"))
    return {
        "shopify_id": shopify_id,
        "title": _parse(kind, shopify_id, "title", text, record.get("title")),
        "description": _parse(kind, shopify_id, "body_html", text, record.get("body_html")),
        "price": _required(kind, shopify_id, "variant price", price),
        "compare_at_price": _parse(kind, shopify_id, "compare_at_price", to_decimal, variant.get("compare_at_price")),
        "inventory_qty": _parse(kind, shopify_id, "inventory_quantity", to_int, variant.get("inventory_quantity"), default=0),
        "image_url": image_url,
    }


def map_order(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Scalar order fields plus 'customer_shopify_id', which the reconciler
    swaps for a local customer id.
    """
    kind = EntityKind.ORDER.value
    shopify_id = _require_id(kind, record)
    customer = _object(kind, shopify_id, "customer", record.get("customer")) or {}

    total_price = _parse(kind, shopify_id, "total_price", to_decimal, record.get("total_price"))
    order_date = _parse(kind, shopify_id, "created_at", parse_timestamp, record.get("created_at"))

    return {
        "shopify_id": shopify_id,
        "order_number": _parse(kind, shopify_id, "order_number", to_int, record.get("order_number")),
        "total_price": _required(kind, shopify_id, "total_price", total_price),
        "subtotal_price": _parse(kind, shopify_id, "subtotal_price", to_decimal, record.get("subtotal_price"), default=ZERO),
        "total_tax": _parse(kind, shopify_id, "total_tax", to_decimal, record.get("total_tax"), default=ZERO),
        "financial_status": _parse(kind, shopify_id, "financial_status", text, record.get("financial_status")),
        "fulfillment_status": _parse(kind, shopify_id, "fulfillment_status", text, record.get("fulfillment_status")),
        "order_date": _required(kind, shopify_id, "created_at", order_date),
        "customer_shopify_id": _parse(kind, shopify_id, "customer id", external_id, customer.get("id")),
    }


def map_line_item(record: Dict[str, Any], order_shopify_id: Optional[str] = None) -> Dict[str, Any]:
    """Line item fields plus 'product_shopify_id'. Errors are reported against the order."""
    kind = EntityKind.ORDER.value
    if not isinstance(record, dict):
        raise MalformedRecordError(kind, order_shopify_id, "line item is not an object")

    quantity = _parse(kind, order_shopify_id, "line item quantity", to_int, record.get("quantity"))
    price = _parse(kind, order_shopify_id, "line item price", to_decimal, record.get("price"))
    return {
        "title": _parse(kind, order_shopify_id, "line item title", text, record.get("title")),
        "quantity": _required(kind, order_shopify_id, "line item quantity", quantity),
        "price": _required(kind, order_shopify_id, "line item price", price),
        "product_shopify_id": _parse(kind, order_shopify_id, "line item product_id", external_id, record.get("product_id")),
    }


# ────────────────────────────────────────────
# UPSERTS
# ────────────────────────────────────────────


class EntityReconciler:
    """Per-tenant reconciliation of Shopify records into the local store"""

    def __init__(self, db: Session, tenant_id: int, resolver: Optional[CrossReferenceResolver] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.resolver = resolver or CrossReferenceResolver(db, tenant_id)
        self.created = 0
        self.updated = 0

    def reconcile_customer(self, record: Dict[str, Any]) -> Customer:
        fields = map_customer(record)
        return self._commit(lambda: self._upsert(Customer, fields))

    def reconcile_product(self, record: Dict[str, Any]) -> Product:
        fields = map_product(record)
        return self._commit(lambda: self._upsert(Product, fields))

    def reconcile_order(self, record: Dict[str, Any]) -> Order:
        """
        Upsert an order and replace its line items.

        The customer link is resolved again on every run, so an order synced
        before its customer existed locally gets linked on a later sync.
        """
        fields = map_order(record)
        line_items = [
            map_line_item(item, fields["shopify_id"])
            for item in _list(EntityKind.ORDER.value, fields["shopify_id"], "line_items", record.get("line_items"))
        ]
        fields["customer_id"] = self.resolver.customer_id(fields.pop("customer_shopify_id"))

        def write():
            order = self._upsert(Order, fields)
            self._replace_line_items(order, line_items)
            return order

        return self._commit(write)

    def reconcile_line_items(self, order: Order, records: List[Dict[str, Any]]) -> List[OrderItem]:
        """
        Replace the items of an order with freshly inserted rows.

        Shopify line items have no key we upsert on, so the previous items
        are removed and the current ones inserted. Not committed here; the
        caller commits together with the order.
        """
        mapped = [map_line_item(item, order.shopify_id) for item in records]
        return self._replace_line_items(order, mapped)

    def _replace_line_items(self, order: Order, line_items: List[Dict[str, Any]]) -> List[OrderItem]:
        items = []
        for item in line_items:
            item = dict(item)
            items.append(OrderItem(
                tenant_id=self.tenant_id,
                product_id=self.resolver.product_id(item.pop("product_shopify_id")),
                **item
            ))
        # delete-orphan cascade removes the previous rows on flush
        order.items = items
        return items

    def _upsert(self, model, fields: Dict[str, Any]) -> Base:
        existing = self.db.query(model).filter(
            model.tenant_id == self.tenant_id,
            model.shopify_id == fields["shopify_id"]
        ).first()

        if existing:
            for key, value in fields.items():
                setattr(existing, key, value)
            self.updated += 1
            return existing

        row = model(tenant_id=self.tenant_id, **fields)
        self.db.add(row)
        self.created += 1
        return row

    def _commit(self, write: Callable[[], Base]) -> Base:
        try:
            row = write()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log.debug(f"Reconciled {row.__class__.__name__} {row.shopify_id} -> {row.id}")
        return row
