"""Sync job history, one row per sync invocation"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey
from datetime import datetime

from shopsync.models.base import Base


class SyncRun(Base):
    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="running")  # running, completed, failed
    stage = Column(String(40), nullable=True)  # Last stage entered

    customers_count = Column(Integer, default=0)
    products_count = Column(Integer, default=0)
    orders_count = Column(Integer, default=0)
    skipped_count = Column(Integer, default=0)

    error_type = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "stage": self.stage,
            "counts": {
                "customers": self.customers_count or 0,
                "products": self.products_count or 0,
                "orders": self.orders_count or 0,
            },
            "skipped": self.skipped_count or 0,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
