"""
Service status endpoints.

``/health`` answers 200 only when the database accepts a trivial query, so
load balancers stop routing to an instance that lost its database.
``/version`` reports the API build. Neither needs an identity.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from loopwell.core.logging_config import get_logger
from loopwell.realtime import MockRealtimeHub
from loopwell.server.core.constant import API_VERSION, PROJECT_NAME
from loopwell.server.services.deps import RealtimeDep, SessionDep

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Report whether the server and its database are usable.",
    responses={503: {"description": "Database unreachable"}},
)
async def health_check(session: SessionDep, hub: RealtimeDep):
    """
    Run ``SELECT 1`` against the database.

    The realtime mode is reported as ``websocket`` or ``mock``.
    """
    realtime = "mock" if isinstance(hub, MockRealtimeHub) else "websocket"
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "database": "unreachable", "realtime": realtime},
        )
    return {"status": "ok", "database": "ok", "realtime": realtime}


@router.get("/version", summary="Get Version")
async def version():
    return {"name": PROJECT_NAME, "version": API_VERSION, "schema_version": "v1"}
