"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends

from bibleeido.config import get_settings
from bibleeido.dependencies import get_progress_store
from bibleeido.progress.store import ProgressStore

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe — returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe — checks the progress store answers."""
    checks: dict[str, object] = {}

    try:
        await store.list_achievement_rules()
        checks["progress_store"] = "ok"
    except Exception as exc:
        checks["progress_store"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
