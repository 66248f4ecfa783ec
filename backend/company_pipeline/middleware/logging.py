"""
Company Pipeline Backend: Pipeline Access Log Middleware
========================================================

What:  One access line per HTTP request that went through the Dispatcher,
       naming the request type and, on failure, the stage that failed.
How:   Route handlers record `request.state.request_type` before dispatching;
       the exception handlers in main.py record `request.state.failed_stage`.
       This middleware reads both after the response is produced.
When:  Runs inside RequestIDMiddleware so the request ID is already set.

Example lines:
    POST /companies 200 CreateCompanyRequest ok in 2.4ms [1f0c2a9e]
    POST /companies 500 CreateCompanyRequest failed at AddKeyBehavior in 1.1ms [1f0c2a9e]

Requests that never reach a pipeline (health checks, docs, 422 body errors)
produce no line here; uvicorn's own access log still covers them.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from company_pipeline.middleware.request_id import request_id_var

logger = logging.getLogger("company_pipeline.access")


def record_request_type(request: Request, request_type: str) -> None:
    """Called by routes right before Dispatcher.send()."""
    request.state.request_type = request_type


def record_failed_stage(request: Request, stage: str) -> None:
    """Called by exception handlers with the behavior/handler name that failed."""
    request.state.failed_stage = stage


class PipelineAccessLogMiddleware(BaseHTTPMiddleware):
    """Logs dispatched requests: INFO when the pipeline completed, WARNING when a stage failed."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)

        request_type = getattr(request.state, "request_type", None)
        if request_type is None:
            return response

        duration_ms = (time.perf_counter() - start_time) * 1000
        failed_stage = getattr(request.state, "failed_stage", None)
        outcome = f"failed at {failed_stage}" if failed_stage else "ok"

        logger.log(
            logging.WARNING if failed_stage else logging.INFO,
            "%s %s %d %s %s in %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            request_type,
            outcome,
            duration_ms,
            request_id_var.get(""),
        )
        return response
