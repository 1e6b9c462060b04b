from __future__ import annotations

from typing import Any, Sequence

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from . import __version__
from .models import MonitoringSnapshot, Target
from .state import MonitoringState


def service_info(target: Target, snapshot: MonitoringSnapshot) -> dict[str, Any]:
    return {
        "url": target.url,
        "interval_seconds": target.interval_seconds,
        "max_retries": target.max_retries,
        "retry_interval_seconds": target.retry_interval_seconds,
        **snapshot.to_dict(),
    }


def _find_target(targets: Sequence[Target], service_id: str) -> Target | None:
    # str.isdigit() is also true for superscripts, which int() rejects.
    if service_id.isascii() and service_id.isdigit():
        index = int(service_id)
        return targets[index] if index < len(targets) else None
    for target in targets:
        if target.url == service_id:
            return target
    return None


def create_app(state: MonitoringState, targets: Sequence[Target]) -> FastAPI:
    """Read-only HTTP view over the monitoring state."""
    targets = tuple(targets)
    app = FastAPI(title="pulsewatch", version=__version__)

    @app.get("/", response_class=PlainTextResponse)
    async def status() -> str:
        return "Ok"

    @app.get("/api/services")
    async def list_services() -> dict[str, Any]:
        snapshots = state.get_all_snapshots()
        services = [service_info(t, snapshots[t.url]) for t in targets if t.url in snapshots]
        return {"services": services, "total_count": len(services)}

    # ":path" so that URLs (which contain slashes) can be used as ids.
    @app.get("/api/services/{service_id:path}")
    async def get_service(service_id: str) -> dict[str, Any]:
        target = _find_target(targets, service_id)
        if target is None:
            raise HTTPException(status_code=404, detail="service_not_found")
        snapshot = state.get_snapshot(target.url)
        if snapshot is None:
            raise HTTPException(status_code=404, detail="service_not_checked_yet")
        return service_info(target, snapshot)

    return app
