"""
Company Pipeline Backend: Dispatcher Unit Tests
===============================================

What:  Tests for PipelineRegistry and Dispatcher chain traversal.
How:   Spy behaviors/handlers record execution order; no HTTP involved.

What we test:
    ✅ Behaviors run in registration order, onion-style around the handler
    ✅ Missing handler raises NoHandlerRegisteredError before any behavior
    ✅ A behavior that never calls its continuation stops the chain
    ✅ Behavior / handler exceptions are wrapped and propagate unchanged outward
    ✅ A continuation cannot be awaited twice
    ✅ Cancellation stops the chain at the next stage boundary
    ✅ Registry rejects duplicate handlers and orphaned behaviors
"""

import asyncio
from typing import Any

import pytest

from company_pipeline.exceptions import (
    BehaviorFailureError,
    HandlerFailureError,
    NoHandlerRegisteredError,
    PipelineCancelledError,
    PipelineConfigurationError,
    PipelineError,
)
from company_pipeline.mediator import (
    CancellationToken,
    PipelineBehavior,
    PipelineRegistry,
    RequestHandler,
)
from company_pipeline.schemas.company import CreateCompanyRequest


class UnknownRequest:
    """A request type nobody registers a handler for."""


class ExplodingBehavior(PipelineBehavior):
    async def handle(self, request: Any, next_step, cancellation: CancellationToken) -> Any:
        raise RuntimeError("boom")


class ShortCircuitBehavior(PipelineBehavior):
    """Returns its own response without calling the continuation."""

    async def handle(self, request: Any, next_step, cancellation: CancellationToken) -> Any:
        return "short-circuited"


class DoubleCallBehavior(PipelineBehavior):
    async def handle(self, request: Any, next_step, cancellation: CancellationToken) -> Any:
        await next_step()
        return await next_step()


class CancellingBehavior(PipelineBehavior):
    async def handle(self, request: Any, next_step, cancellation: CancellationToken) -> Any:
        cancellation.cancel()
        return await next_step()


class FailingHandler(RequestHandler):
    async def handle(self, request: Any, cancellation: CancellationToken) -> Any:
        raise ValueError("handler exploded")


class TestDispatchOrdering:
    """Registration order is execution order."""

    @pytest.mark.asyncio
    async def test_behaviors_wrap_handler_in_registration_order(
        self, make_behavior, recording_handler, call_log, company_request
    ):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("first"))
            .add_behavior(CreateCompanyRequest, make_behavior("second"))
            .build()
        )

        await dispatcher.send(company_request)

        assert call_log == [
            "before:first",
            "before:second",
            "handler",
            "after:second",
            "after:first",
        ]
        assert recording_handler.invocations == 1

    @pytest.mark.asyncio
    async def test_reversed_registration_reverses_execution(
        self, make_behavior, recording_handler, call_log, company_request
    ):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("second"))
            .add_behavior(CreateCompanyRequest, make_behavior("first"))
            .build()
        )

        await dispatcher.send(company_request)

        assert call_log[:2] == ["before:second", "before:first"]

    @pytest.mark.asyncio
    async def test_handler_only_pipeline(self, recording_handler, company_request):
        dispatcher = PipelineRegistry().add_handler(CreateCompanyRequest, recording_handler).build()

        result = await dispatcher.send(company_request)

        assert result.name == company_request.name
        assert dispatcher.pipeline_for(CreateCompanyRequest).behavior_names == []


class TestDispatchFailures:
    """Failures stop the chain and reach the caller."""

    @pytest.mark.asyncio
    async def test_missing_handler_runs_no_behavior(self, make_behavior, recording_handler, call_log):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("first"))
            .build()
        )

        with pytest.raises(NoHandlerRegisteredError) as exc_info:
            await dispatcher.send(UnknownRequest())

        assert exc_info.value.request_type == "UnknownRequest"
        assert call_log == []

    @pytest.mark.asyncio
    async def test_short_circuit_skips_handler(
        self, make_behavior, recording_handler, call_log, company_request
    ):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("outer"))
            .add_behavior(CreateCompanyRequest, ShortCircuitBehavior())
            .add_behavior(CreateCompanyRequest, make_behavior("inner"))
            .build()
        )

        result = await dispatcher.send(company_request)

        assert result == "short-circuited"
        assert recording_handler.invocations == 0
        assert call_log == ["before:outer", "after:outer"]

    @pytest.mark.asyncio
    async def test_behavior_exception_is_wrapped_and_stops_chain(
        self, make_behavior, recording_handler, call_log, company_request
    ):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("outer"))
            .add_behavior(CreateCompanyRequest, ExplodingBehavior())
            .add_behavior(CreateCompanyRequest, make_behavior("inner"))
            .build()
        )

        with pytest.raises(BehaviorFailureError) as exc_info:
            await dispatcher.send(company_request)

        assert exc_info.value.behavior == "ExplodingBehavior"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert recording_handler.invocations == 0
        # The outer behavior saw the failure instead of a response
        assert call_log == ["before:outer"]

    @pytest.mark.asyncio
    async def test_handler_exception_is_wrapped_and_keeps_mutations(self, company_request):
        class SetKeyBehavior(PipelineBehavior):
            async def handle(self, request, next_step, cancellation):
                request.key = "already-set"
                return await next_step()

        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, FailingHandler())
            .add_behavior(CreateCompanyRequest, SetKeyBehavior())
            .build()
        )

        with pytest.raises(HandlerFailureError) as exc_info:
            await dispatcher.send(company_request)

        assert exc_info.value.handler == "FailingHandler"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert company_request.key == "already-set"

    @pytest.mark.asyncio
    async def test_continuation_cannot_run_twice(self, recording_handler, company_request):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, DoubleCallBehavior())
            .build()
        )

        with pytest.raises(PipelineError):
            await dispatcher.send(company_request)

        assert recording_handler.invocations == 1


class TestCancellation:
    """The token is checked at every stage boundary."""

    @pytest.mark.asyncio
    async def test_pre_cancelled_token_runs_nothing(
        self, make_behavior, recording_handler, call_log, company_request
    ):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("first"))
            .build()
        )
        token = CancellationToken()
        token.cancel()

        with pytest.raises(PipelineCancelledError) as exc_info:
            await dispatcher.send(company_request, token)

        assert exc_info.value.stage == "first"
        assert call_log == []

    @pytest.mark.asyncio
    async def test_cancel_mid_chain_skips_handler(
        self, make_behavior, recording_handler, call_log, company_request
    ):
        dispatcher = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("outer"))
            .add_behavior(CreateCompanyRequest, CancellingBehavior())
            .build()
        )

        with pytest.raises(PipelineCancelledError) as exc_info:
            await dispatcher.send(company_request, CancellationToken())

        assert exc_info.value.stage == "RecordingHandler"
        assert recording_handler.invocations == 0
        assert call_log == ["before:outer"]

    @pytest.mark.asyncio
    async def test_wait_returns_once_cancelled(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)

        assert not token.cancelled
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

        assert token.cancelled


class TestConcurrentDispatch:

    @pytest.mark.asyncio
    async def test_each_dispatch_invokes_handler_once(self, recording_handler):
        dispatcher = PipelineRegistry().add_handler(CreateCompanyRequest, recording_handler).build()
        requests = [
            CreateCompanyRequest(name=f"Company {i}", address=f"{i} Main St") for i in range(25)
        ]

        results = await asyncio.gather(*(dispatcher.send(r) for r in requests))

        assert recording_handler.invocations == 25
        assert [r.name for r in results] == [r.name for r in requests]


class TestPipelineRegistry:

    def test_duplicate_handler_rejected(self, recording_handler):
        registry = PipelineRegistry().add_handler(CreateCompanyRequest, recording_handler)

        with pytest.raises(PipelineConfigurationError):
            registry.add_handler(CreateCompanyRequest, FailingHandler())

    def test_behaviors_without_handler_rejected(self, make_behavior):
        registry = PipelineRegistry().add_behavior(CreateCompanyRequest, make_behavior("lonely"))

        with pytest.raises(PipelineConfigurationError) as exc_info:
            registry.build()

        assert exc_info.value.context["request_types"] == ["CreateCompanyRequest"]

    def test_built_pipeline_is_immutable(self, make_behavior, recording_handler):
        registry = (
            PipelineRegistry()
            .add_handler(CreateCompanyRequest, recording_handler)
            .add_behavior(CreateCompanyRequest, make_behavior("first"))
        )
        dispatcher = registry.build()

        # Later registrations do not leak into an already built dispatcher
        registry.add_behavior(CreateCompanyRequest, make_behavior("late"))

        pipeline = dispatcher.pipeline_for(CreateCompanyRequest)
        assert pipeline.behavior_names == ["first"]
        assert isinstance(pipeline.behaviors, tuple)
        assert dispatcher.registered_types() == [CreateCompanyRequest]
