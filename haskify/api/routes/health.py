"""Health check endpoints."""

import json
from typing import Any

import redis
from fastapi import APIRouter, Response
from sqlalchemy import text

from haskify.api.deps import ServicesDep
from haskify.services import Services

router = APIRouter()


async def check_db(services: Services) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if services.engine is None:
        return (True, "in_memory")

    try:
        async with services.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_redis(services: Services) -> tuple[bool, str]:
    """Check Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    redis_url = services.settings.redis_url
    if not redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: 200 whenever the process is serving."""
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(services: ServicesDep) -> dict[str, Any] | Response:
    """Readiness check covering the document store and Redis.

    Returns:
        200 with component status if all configured backends respond,
        503 otherwise
    """
    db_ok, db_status = await check_db(services)
    redis_ok, redis_status = await check_redis(services)
    core_ok = db_ok and redis_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "db": db_status,
            "redis": redis_status,
            "retrieval_mode": services.settings.retrieval_mode,
        },
    }

    if not core_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
