"""
Company Pipeline Backend: Pipeline Wiring
=========================================

What:  Startup construction of the Dispatcher and the FastAPI dependency that
       hands it to route handlers.
How:   PIPELINE_BEHAVIORS names are looked up in BEHAVIOR_CATALOG and registered
       in that order for CreateCompanyRequest, together with its single handler.
Who:   create_app() calls build_dispatcher(); routes use Depends(get_dispatcher).
When:  build_dispatcher() runs once per app; get_dispatcher() once per request.

Registry (default configuration):
    CreateCompanyRequest:
        behaviors: log_requests → add_key → add_hash
        handler:   CreateCompanyHandler

The registry is explicit: no module scanning or reflection decides what runs.
"""

import logging
from typing import Callable, Dict, Optional

from fastapi import Request

from company_pipeline.config import Settings, settings as default_settings
from company_pipeline.exceptions import PipelineConfigurationError
from company_pipeline.mediator import Dispatcher, PipelineBehavior, PipelineRegistry
from company_pipeline.schemas.company import CreateCompanyRequest
from company_pipeline.services.behaviors import (
    AddHashBehavior,
    AddKeyBehavior,
    RequestLoggingBehavior,
)
from company_pipeline.services.company_service import CreateCompanyHandler

logger = logging.getLogger(__name__)

# ── Behavior Catalog ──────────────────────────────────────────────────────
# What: Configuration name → factory building the behavior from settings
BEHAVIOR_CATALOG: Dict[str, Callable[[Settings], PipelineBehavior]] = {
    "log_requests": lambda cfg: RequestLoggingBehavior(),
    "add_key": lambda cfg: AddKeyBehavior(
        prefix=cfg.key_prefix, token_length=cfg.key_token_length
    ),
    "add_hash": lambda cfg: AddHashBehavior(),
}


def build_behavior(name: str, cfg: Settings) -> PipelineBehavior:
    """Instantiate one catalog behavior, failing fast on unknown names."""
    factory = BEHAVIOR_CATALOG.get(name)
    if factory is None:
        raise PipelineConfigurationError(
            message=f"Unknown pipeline behavior '{name}'",
            context={"behavior": name, "available": sorted(BEHAVIOR_CATALOG)},
        )
    return factory(cfg)


def build_dispatcher(cfg: Optional[Settings] = None) -> Dispatcher:
    """
    Build the application's Dispatcher from settings.

    Args:
        cfg: Settings to read PIPELINE_BEHAVIORS and key options from
             (defaults to the module-level singleton).

    Raises:
        PipelineConfigurationError: unknown behavior name.
    """
    cfg = cfg or default_settings
    registry = PipelineRegistry()
    registry.add_handler(CreateCompanyRequest, CreateCompanyHandler())
    for name in cfg.pipeline_behaviors_list:
        registry.add_behavior(CreateCompanyRequest, build_behavior(name, cfg))
    return registry.build()


def get_dispatcher(request: Request) -> Dispatcher:
    """
    FastAPI dependency returning the Dispatcher built at startup.

    Usage:
        @router.post("/companies")
        async def create(body: CreateCompanyRequest,
                         dispatcher: Dispatcher = Depends(get_dispatcher)):
            ...
    """
    return request.app.state.dispatcher
