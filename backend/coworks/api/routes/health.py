from fastapi import APIRouter
from sqlalchemy import text

from coworks.core.logging_setup import logger
from coworks.db import session as db_session

router = APIRouter(tags=["health"])


@router.get("/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def ready() -> dict[str, str]:
    try:
        with db_session.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check failed")
        return {"status": "unavailable"}
    return {"status": "ready"}
