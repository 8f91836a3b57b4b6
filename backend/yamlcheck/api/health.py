"""Health check endpoint."""

import shutil
import time
from fastapi import APIRouter, Request

from yamlcheck import __version__
from yamlcheck.models.responses import CacheStatus, GateStatus, HealthResponse, HealthDependency

router = APIRouter()

_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """System health check with tool availability, gate and cache status."""
    engine = request.app.state.engine
    dependencies = {}

    # Check each tool binary is on PATH
    for tool in engine.tools:
        location = shutil.which(tool.command)
        if location:
            dependencies[tool.name] = HealthDependency(status="healthy", message=location)
        else:
            dependencies[tool.name] = HealthDependency(
                status="unhealthy",
                message=f"{tool.command} not found on PATH",
            )

    # Overall status: missing tools are skipped at validation time, so degrade rather than fail
    all_healthy = all(d.status == "healthy" for d in dependencies.values())
    status = "healthy" if all_healthy else "degraded"

    stats = engine.cache.stats
    return HealthResponse(
        status=status,
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        dependencies=dependencies,
        gate=GateStatus(
            capacity=engine.gate.capacity,
            in_use=engine.gate.in_use,
            peak=engine.gate.peak,
        ),
        cache=CacheStatus(**stats.to_dict()),
    )
