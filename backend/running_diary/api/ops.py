"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from running_diary.infra.postgres import get_pool
from running_diary.infra.redis import redis_client
from running_diary.settings import settings

router = APIRouter(prefix="", tags=["ops"])


@router.get("/health")
async def health() -> Response:
	checks: dict[str, str] = {}
	try:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute("SELECT 1")
		checks["postgres"] = "ok"
	except Exception:
		checks["postgres"] = "error"
	try:
		await redis_client.ping()
		checks["redis"] = "ok"
	except Exception:
		checks["redis"] = "error"
	healthy = all(value == "ok" for value in checks.values())
	return JSONResponse(
		content={"status": "ok" if healthy else "degraded", "service": settings.service_name, "checks": checks},
		status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
	)


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name, "commit": settings.git_commit}


@router.get("/metrics")
async def prometheus_metrics() -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = ["router"]
