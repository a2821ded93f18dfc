"""
Health check endpoint
"""
from datetime import datetime

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shopsync import __version__
from shopsync.config import get_settings
from shopsync.utils.logger import log

router = APIRouter()


def _database_status(request: Request) -> str:
    try:
        db = request.app.state.store.session()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except SQLAlchemyError as e:
        log.error(f"Health check could not reach the database: {e}")
        return "error"
    return "ok"


@router.get("/health")
async def health_check(request: Request):
    """Liveness plus a database round trip. Public."""
    database = _database_status(request)
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": get_settings().app_name,
        "database": database,
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }
