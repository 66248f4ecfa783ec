# Mediator package init
"""
Company Pipeline Backend: Mediator Package
==========================================

What:  In-process request/response pipeline with ordered middleware.
Why:   Decouples the HTTP boundary from the handler that produces a response,
       and lets cross-cutting behaviors observe and mutate the request first.

Pipeline (order matters!):
    Dispatcher.send(request) → [Behavior 1] → [Behavior 2] → ... → Handler

    The order is reversed for responses:
    response ← [Behavior 1] ← [Behavior 2] ← ... ← Handler
"""

from company_pipeline.mediator.base import (
    CancellationToken,
    NextStep,
    PipelineBehavior,
    RequestHandler,
)
from company_pipeline.mediator.dispatcher import Dispatcher, Pipeline, PipelineRegistry

__all__ = [
    "CancellationToken",
    "Dispatcher",
    "NextStep",
    "Pipeline",
    "PipelineBehavior",
    "PipelineRegistry",
    "RequestHandler",
]
