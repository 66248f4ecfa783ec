"""
Company Pipeline Backend: Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for the request pipeline and its HTTP boundary.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching HTTP status.
Who:   Raised by the dispatcher, startup wiring and services; caught by global handlers.

Exception Hierarchy:
    CompanyPipelineError (base)
    ├── PipelineError                  → 500 (pipeline misused at runtime)
    ├── PipelineConfigurationError     → startup fails / 500 at dispatch
    │   └── NoHandlerRegisteredError   → 500 (no handler for the request type)
    ├── BehaviorFailureError           → 500 (a behavior raised)
    ├── HandlerFailureError            → 500 (the terminal handler raised)
    └── PipelineCancelledError         → 503 (cancellation observed mid-chain)

Failure propagation:
    Nothing is retried. A failure anywhere in the chain travels straight back
    through the outer behaviors to the dispatcher's caller. Mutations already
    made to the request object are not rolled back.
"""

from typing import Any, Dict, Optional


class CompanyPipelineError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client for 5xx)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class PipelineError(CompanyPipelineError):
    """
    Raised when a stage misuses the pipeline contract.

    When:  A behavior awaits its continuation more than once. The handler must
           run exactly once per dispatch, so the second call is refused.
    """

    def __init__(
        self,
        message: str = "Pipeline contract violated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PipelineConfigurationError(CompanyPipelineError):
    """
    Raised when the pipeline registry is inconsistent.

    When:  Duplicate handler for a request type, behaviors registered for a type
           with no handler, unknown behavior names in PIPELINE_BEHAVIORS.
    These are detected at startup, before the first request is served.
    """

    def __init__(
        self,
        message: str = "Pipeline configuration is invalid",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NoHandlerRegisteredError(PipelineConfigurationError):
    """
    Raised by Dispatcher.send() when the request's type has no handler.

    No behavior runs before this is raised. There is no sensible default
    handler, so the error is fatal for the request.
    """

    def __init__(
        self,
        request_type: str = "request",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["request_type"] = request_type
        super().__init__(
            message=f"No handler registered for {request_type}",
            context=ctx,
        )
        self.request_type = request_type


class BehaviorFailureError(CompanyPipelineError):
    """
    Raised when a pipeline behavior fails.

    When:  A behavior raises an exception that is not itself a pipeline error.
           If it raised before calling its continuation, downstream behaviors
           and the handler never run.
    HTTP:  500 Internal Server Error

    The original exception is chained as __cause__ and logged server-side.
    """

    def __init__(
        self,
        behavior: str = "behavior",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["behavior"] = behavior
        super().__init__(
            message=message or f"Pipeline behavior '{behavior}' failed",
            context=ctx,
        )
        self.behavior = behavior


class HandlerFailureError(CompanyPipelineError):
    """
    Raised when the terminal request handler fails.

    HTTP:  500 Internal Server Error
    Note:  Behaviors' "before" mutations on the request are kept as-is.
    """

    def __init__(
        self,
        handler: str = "handler",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["handler"] = handler
        super().__init__(
            message=message or f"Request handler '{handler}' failed",
            context=ctx,
        )
        self.handler = handler


class PipelineCancelledError(CompanyPipelineError):
    """
    Raised when a dispatch observes its cancellation token.

    When:  The token was cancelled before the dispatcher entered the next stage.
    HTTP:  503 Service Unavailable
    """

    def __init__(
        self,
        stage: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Request was cancelled before the pipeline completed"
        ctx = context or {}
        if stage:
            ctx["stage"] = stage
        super().__init__(message=message, context=ctx)
        self.stage = stage
