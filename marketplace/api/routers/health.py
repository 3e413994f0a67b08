# marketplace/api/routers/health.py
from fastapi import APIRouter, Request

from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    """Liveness plus a database round trip; always 200, the body says what is down."""
    try:
        request.app.state.database.ping()
        return {"status": "ok", "database": "ok"}
    except Exception as e:
        logger.error(f"Health check database ping failed: {e}")
        return {"status": "degraded", "database": "unavailable"}
