"""
Company Pipeline Backend: Pipeline Behaviors
============================================

What:  Cross-cutting interceptors applied to CreateCompanyRequest before the handler.
How:   Each class implements PipelineBehavior.handle(request, next_step, cancellation).
Who:   Instantiated by pipeline.build_dispatcher() from PIPELINE_BEHAVIORS.

Catalog:
    log_requests  → RequestLoggingBehavior  (timing + outcome logging, pass-through)
    add_key       → AddKeyBehavior          (request.key  = "123456789-" + 20 chars of a UUID)
    add_hash      → AddHashBehavior         (request.hash = full UUID)

All three return the downstream response unchanged.
"""

import logging
import time
import uuid
from typing import Any

from company_pipeline.mediator.base import CancellationToken, NextStep, PipelineBehavior
from company_pipeline.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RequestLoggingBehavior(PipelineBehavior):
    """
    Logs each dispatch on entry and on exit with its duration.

    Registered first, it sees the raw request and the final response, so the
    measured duration covers every inner behavior and the handler.
    """

    async def handle(
        self,
        request: Any,
        next_step: NextStep,
        cancellation: CancellationToken,
    ) -> Any:
        request_type = type(request).__name__
        rid = request_id_var.get("")
        logger.info("[%s] Handling %s", rid, request_type)

        start_time = time.perf_counter()
        try:
            response = await next_step()
        except Exception:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] %s failed after %.1fms", rid, request_type, duration_ms
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] Handled %s → %s in %.1fms",
            rid,
            request_type,
            type(response).__name__,
            duration_ms,
        )
        return response


class AddKeyBehavior(PipelineBehavior):
    """
    Overwrites request.key with `<prefix><first N chars of a fresh UUID4>`.

    With the defaults the key looks like "123456789-1b4e28ba-2fa1-11d2-8"
    (prefix + 20 characters).
    """

    def __init__(self, prefix: str = "123456789-", token_length: int = 20):
        self.prefix = prefix
        self.token_length = token_length

    def generate_key(self) -> str:
        return f"{self.prefix}{str(uuid.uuid4())[:self.token_length]}"

    async def handle(
        self,
        request: Any,
        next_step: NextStep,
        cancellation: CancellationToken,
    ) -> Any:
        logger.info("Adding key to request")
        request.key = self.generate_key()
        return await next_step()


class AddHashBehavior(PipelineBehavior):
    """Overwrites request.hash with a fresh UUID4 string (no prefix, no truncation)."""

    async def handle(
        self,
        request: Any,
        next_step: NextStep,
        cancellation: CancellationToken,
    ) -> Any:
        logger.info("Adding hash to request")
        request.hash = str(uuid.uuid4())
        return await next_step()
