"""Liveness and database readiness probes."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from magiclink import __version__
from magiclink.api.deps import DbSession

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def health_check():
    return {"status": "ok", "version": __version__}


@router.get("/db")
async def health_check_db(db: DbSession):
    """Readiness: the database answers a trivial query."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "database": "disconnected"},
        )
    return {"status": "ok", "database": "connected"}
