"""
Insights Service

Read-only, tenant-filtered aggregations over synced orders and customers
for the dashboard.
"""
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from shopsync.models.shopify import Customer, Order
from shopsync.utils.helpers import round_money

REVENUE_PERIODS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD_DAYS = 30


class InsightsService:
    """Dashboard metrics for one tenant"""

    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    def overview(self) -> Dict:
        """Total customers, orders, revenue and average order value"""
        total_customers = self.db.query(func.count(Customer.id)).filter(
            Customer.tenant_id == self.tenant_id
        ).scalar() or 0

        total_orders, total_revenue = self.db.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_price), 0)
        ).filter(Order.tenant_id == self.tenant_id).one()

        total_revenue = float(total_revenue or 0)
        avg_order_value = total_revenue / total_orders if total_orders else 0

        return {
            "totalCustomers": total_customers,
            "totalOrders": total_orders,
            "totalRevenue": round_money(total_revenue),
            "avgOrderValue": round_money(avg_order_value),
        }

    def orders_by_date(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Dict]:
        """Order count and revenue per day, oldest first. Both bounds inclusive."""
        query = self.db.query(Order.order_date, Order.total_price).filter(
            Order.tenant_id == self.tenant_id
        )
        if start_date:
            query = query.filter(Order.order_date >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Order.order_date <= datetime.combine(end_date, time.max))

        grouped: "OrderedDict[str, Dict]" = OrderedDict()
        for order_date, total_price in query.order_by(Order.order_date.asc()):
            day = order_date.date().isoformat()
            bucket = grouped.setdefault(day, {"date": day, "orderCount": 0, "revenue": 0.0})
            bucket["orderCount"] += 1
            bucket["revenue"] += float(total_price or 0)

        return [
            {**bucket, "revenue": round_money(bucket["revenue"])}
            for bucket in grouped.values()
        ]

    def top_customers(self, limit: int = 5) -> List[Dict]:
        customers = self.db.query(Customer).filter(
            Customer.tenant_id == self.tenant_id
        ).order_by(Customer.total_spent.desc(), Customer.id.asc()).limit(limit).all()

        return [
            {
                "id": c.id,
                "firstName": c.first_name,
                "lastName": c.last_name,
                "email": c.email,
                "totalSpent": round_money(c.total_spent),
                "ordersCount": c.orders_count,
            }
            for c in customers
        ]

    def revenue_trend(self, period: str = "30d", now: Optional[datetime] = None) -> List[Dict]:
        """Daily revenue over the last 7, 30 or 90 days. Unknown periods mean 30 days."""
        days = REVENUE_PERIODS.get(period, DEFAULT_PERIOD_DAYS)
        since = (now or datetime.utcnow()) - timedelta(days=days)

        rows = self.db.query(Order.order_date, Order.total_price).filter(
            Order.tenant_id == self.tenant_id,
            Order.order_date >= since
        ).order_by(Order.order_date.asc())

        revenue: "OrderedDict[str, float]" = OrderedDict()
        for order_date, total_price in rows:
            day = order_date.date().isoformat()
            revenue[day] = revenue.get(day, 0.0) + float(total_price or 0)

        return [{"date": day, "revenue": round_money(amount)} for day, amount in revenue.items()]
