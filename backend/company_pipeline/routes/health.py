"""
Company Pipeline Backend: Health Check Route
============================================

What:  Health check endpoint for monitoring and load balancer health checks.
How:   Reports uptime and the pipelines the Dispatcher was built with.
       The service is "healthy" when at least one request type has a handler.
"""

import logging
import time

from fastapi import APIRouter, Depends

from company_pipeline import __version__
from company_pipeline.mediator import Dispatcher
from company_pipeline.pipeline import get_dispatcher
from company_pipeline.schemas.company import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns service status, version, uptime and the configured request "
        "pipelines (behavior order per request type)."
    ),
)
async def health_check(
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> HealthResponse:
    request_types = dispatcher.registered_types()
    behaviors = {
        request_type.__name__: dispatcher.pipeline_for(request_type).behavior_names
        for request_type in request_types
    }

    overall = "healthy" if request_types else "unhealthy"
    if not request_types:
        logger.warning("Health check: no request handlers registered")

    return HealthResponse(
        status=overall,
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        request_types=[request_type.__name__ for request_type in request_types],
        behaviors=behaviors,
    )
