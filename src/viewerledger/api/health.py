"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends

from viewerledger import __version__
from viewerledger.api.dependencies import get_store
from viewerledger.database import Store

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe — returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    store: Store = Depends(get_store),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe — checks that a pooled connection answers."""
    checks: dict[str, object] = {}

    try:
        await store.ping()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    return {"version": __version__}
