from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check for load balancers and uptime monitors.

    Not rate limited and outside the admin gateway.
    """

    return {"status": "ok"}
