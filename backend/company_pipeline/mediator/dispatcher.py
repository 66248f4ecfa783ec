"""
Company Pipeline Backend: Dispatcher and Pipeline Registry
==========================================================

What:  Routes a request to its ordered behavior chain and single handler.
How:   PipelineRegistry collects (request type → handler, behaviors) at startup
       and freezes them into a Dispatcher. Each Dispatcher.send() creates a
       _PipelineRun that walks the chain by index.
Who:   Built by pipeline.build_dispatcher(); called by route handlers.
When:  Registry once at startup; send() once per request.

Chain traversal (behaviors [B1, B2], handler H):

    send(req)
      └─ step 0: B1.handle(req, next=step 1)
           └─ step 1: B2.handle(req, next=step 2)
                └─ step 2: H.handle(req)          ← exactly once
           ←─ B2 post-processing
      ←─ B1 post-processing
    ← response

Error translation:
    Behavior raises non-pipeline exception → BehaviorFailureError (chained)
    Handler raises non-pipeline exception  → HandlerFailureError (chained)
    Pipeline errors from deeper stages     → propagate unchanged
    asyncio.CancelledError                 → propagates unchanged

Thread Safety:
    Pipelines are frozen dataclasses holding tuples, stored in a read-only
    mapping. Concurrent dispatches share them without locking; per-dispatch
    state lives only in _PipelineRun.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from company_pipeline.exceptions import (
    BehaviorFailureError,
    CompanyPipelineError,
    HandlerFailureError,
    NoHandlerRegisteredError,
    PipelineConfigurationError,
    PipelineError,
)
from company_pipeline.mediator.base import (
    CancellationToken,
    PipelineBehavior,
    RequestHandler,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pipeline:
    """Immutable chain for one request type: ordered behaviors then one handler."""

    request_type: type
    handler: RequestHandler
    behaviors: Tuple[PipelineBehavior, ...] = ()

    @property
    def behavior_names(self) -> List[str]:
        return [behavior.name for behavior in self.behaviors]


class PipelineRegistry:
    """
    Mutable builder for the startup configuration surface.

    Usage:
        registry = PipelineRegistry()
        registry.add_handler(CreateCompanyRequest, CreateCompanyHandler())
        registry.add_behavior(CreateCompanyRequest, AddKeyBehavior())
        registry.add_behavior(CreateCompanyRequest, AddHashBehavior())
        dispatcher = registry.build()

    Behaviors run in the order add_behavior() was called for that type.
    """

    def __init__(self) -> None:
        self._handlers: Dict[type, RequestHandler] = {}
        self._behaviors: Dict[type, List[PipelineBehavior]] = {}

    def add_handler(self, request_type: type, handler: RequestHandler) -> "PipelineRegistry":
        if request_type in self._handlers:
            raise PipelineConfigurationError(
                message=f"A handler is already registered for {request_type.__name__}",
                context={
                    "request_type": request_type.__name__,
                    "existing_handler": self._handlers[request_type].name,
                    "handler": handler.name,
                },
            )
        self._handlers[request_type] = handler
        return self

    def add_behavior(
        self, request_type: type, behavior: PipelineBehavior
    ) -> "PipelineRegistry":
        self._behaviors.setdefault(request_type, []).append(behavior)
        return self

    def build(self) -> "Dispatcher":
        """
        Freeze the registrations into a Dispatcher.

        Raises:
            PipelineConfigurationError: behaviors exist for a request type that
                has no handler (they could never run).
        """
        orphaned = [t.__name__ for t in self._behaviors if t not in self._handlers]
        if orphaned:
            raise PipelineConfigurationError(
                message="Behaviors registered for request types without a handler",
                context={"request_types": orphaned},
            )

        pipelines = {
            request_type: Pipeline(
                request_type=request_type,
                handler=handler,
                behaviors=tuple(self._behaviors.get(request_type, ())),
            )
            for request_type, handler in self._handlers.items()
        }
        for pipeline in pipelines.values():
            logger.info(
                "Registered pipeline for %s: %s → %s",
                pipeline.request_type.__name__,
                " → ".join(pipeline.behavior_names) or "(no behaviors)",
                pipeline.handler.name,
            )
        return Dispatcher(pipelines)


class Dispatcher:
    """
    Sends requests through their configured pipelines.

    Guarantees per send():
        - Fails with NoHandlerRegisteredError before any behavior runs if the
          request type is unknown
        - Each behavior is entered at most once, in registration order
        - The handler runs at most once, after all "before" logic
    """

    def __init__(self, pipelines: Mapping[type, Pipeline]):
        self._pipelines: Mapping[type, Pipeline] = MappingProxyType(dict(pipelines))

    def registered_types(self) -> List[type]:
        return list(self._pipelines)

    def pipeline_for(self, request_type: type) -> Pipeline:
        pipeline = self._pipelines.get(request_type)
        if pipeline is None:
            raise NoHandlerRegisteredError(request_type=request_type.__name__)
        return pipeline

    async def send(
        self,
        request: Any,
        cancellation: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Run `request` through its behavior chain and handler.

        Args:
            request:      Request instance; its type selects the pipeline.
            cancellation: Optional token checked at every stage boundary.

        Returns:
            The response produced by the handler (possibly replaced by a behavior).

        Raises:
            NoHandlerRegisteredError: No pipeline for type(request).
            BehaviorFailureError:     A behavior raised.
            HandlerFailureError:      The handler raised.
            PipelineCancelledError:   The token was cancelled mid-chain.
        """
        pipeline = self.pipeline_for(type(request))
        run = _PipelineRun(pipeline, request, cancellation or CancellationToken())
        return await run.invoke(0)


class _Continuation:
    """Awaitable-once link from one stage to the next."""

    __slots__ = ("_run", "_index", "_called")

    def __init__(self, run: "_PipelineRun", index: int):
        self._run = run
        self._index = index
        self._called = False

    async def __call__(self) -> Any:
        if self._called:
            raise PipelineError(
                message="Pipeline continuation awaited more than once",
                context={"stage": self._run.stage_name(self._index)},
            )
        self._called = True
        return await self._run.invoke(self._index)


class _PipelineRun:
    """Per-dispatch state: the pipeline, the request and the cancellation token."""

    def __init__(
        self,
        pipeline: Pipeline,
        request: Any,
        cancellation: CancellationToken,
    ):
        self.pipeline = pipeline
        self.request = request
        self.cancellation = cancellation

    def stage_name(self, index: int) -> str:
        if index < len(self.pipeline.behaviors):
            return self.pipeline.behaviors[index].name
        return self.pipeline.handler.name

    async def invoke(self, index: int) -> Any:
        """Run stage `index`: a behavior while index < len(behaviors), else the handler."""
        self.cancellation.raise_if_cancelled(stage=self.stage_name(index))

        behaviors = self.pipeline.behaviors
        if index < len(behaviors):
            behavior = behaviors[index]
            try:
                return await behavior.handle(
                    self.request, _Continuation(self, index + 1), self.cancellation
                )
            except CompanyPipelineError:
                raise
            except Exception as exc:
                logger.error("Behavior %s failed: %s", behavior.name, exc)
                raise BehaviorFailureError(
                    behavior=behavior.name,
                    context={"request_type": type(self.request).__name__},
                ) from exc

        handler = self.pipeline.handler
        try:
            return await handler.handle(self.request, self.cancellation)
        except CompanyPipelineError:
            raise
        except Exception as exc:
            logger.error("Handler %s failed: %s", handler.name, exc)
            raise HandlerFailureError(
                handler=handler.name,
                context={"request_type": type(self.request).__name__},
            ) from exc
