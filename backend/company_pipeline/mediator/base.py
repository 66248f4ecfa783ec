"""
Company Pipeline Backend: Mediator Contracts
============================================

What:  Abstract base classes for request handlers and pipeline behaviors,
       plus the cancellation token threaded through every stage.
How:   Concrete handlers inherit from RequestHandler; interceptors inherit
       from PipelineBehavior. The Dispatcher only ever talks to these types.
Who:   Implemented in services/; driven by mediator/dispatcher.py.

Stage contracts:
    RequestHandler.handle(request, cancellation) -> response
        Terminal step. Runs exactly once per dispatch, after every behavior's
        "before" logic.

    PipelineBehavior.handle(request, next_step, cancellation) -> response
        May read or mutate the request, then decide whether to await
        next_step(). May inspect or replace the response it gets back.
        Raising (or returning without awaiting next_step) stops the chain.

    The request object is the only mutable state shared between stages of
    one dispatch. Every dispatch gets its own request instance.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

from company_pipeline.exceptions import PipelineCancelledError

# What: The continuation handed to a behavior; awaiting it runs the rest of the chain
NextStep = Callable[[], Awaitable[Any]]


class CancellationToken:
    """
    Cooperative cancellation signal for a single dispatch.

    The dispatcher checks the token before entering each stage. Stages that do
    real work may call raise_if_cancelled() themselves between steps.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(dispatcher.send(request, token))
        token.cancel()   # next stage boundary raises PipelineCancelledError
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self, stage: Optional[str] = None) -> None:
        if self.cancelled:
            raise PipelineCancelledError(stage=stage)

    async def wait(self) -> None:
        """Blocks until cancel() is called."""
        await self._event.wait()


class RequestHandler(ABC):
    """
    Terminal stage of a pipeline: produces the response for one request type.

    Contract:
        - Exactly one handler is registered per request type
        - handle() sees the request as mutated by every upstream behavior
        - Exceptions propagate; the dispatcher wraps them in HandlerFailureError
    """

    @property
    def name(self) -> str:
        """Identifier used in logs and error context."""
        return type(self).__name__

    @abstractmethod
    async def handle(self, request: Any, cancellation: CancellationToken) -> Any:
        """
        Produce the response for `request`.

        Args:
            request:      The (possibly mutated) request object.
            cancellation: Token for this dispatch; long-running handlers
                          should check it between steps.

        Returns:
            The response value returned to the dispatcher's caller.
        """
        ...


class PipelineBehavior(ABC):
    """
    Ordered interceptor wrapped around the handler.

    Behaviors form an onion: the first registered behavior sees the rawest
    request and the final response; the last registered behavior sees the most
    mutated request and the handler's response before any outer post-processing.
    """

    @property
    def name(self) -> str:
        """Identifier used in logs, health output and error context."""
        return type(self).__name__

    @abstractmethod
    async def handle(
        self,
        request: Any,
        next_step: NextStep,
        cancellation: CancellationToken,
    ) -> Any:
        """
        Run "before" logic, await next_step(), run "after" logic.

        Args:
            request:      Request object; mutate fields in place to pass data
                          downstream.
            next_step:    Continuation to the next behavior or the handler.
                          Await it at most once.
            cancellation: Token for this dispatch.

        Returns:
            The response from next_step(), or a replacement.
        """
        ...
