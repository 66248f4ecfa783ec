"""
Company Pipeline Backend: Companies Route Handler
=================================================

What:  Handles POST /companies.
How:   FastAPI decodes the JSON body into CreateCompanyRequest, the route sends
       it through the Dispatcher, and the CompanyResponse is encoded back.
Who:   Called by API clients and the Swagger UI at /docs.

Request Flow:
    1. FastAPI validates the body against CreateCompanyRequest (422 on failure)
    2. Dispatcher runs: log_requests → add_key → add_hash → CreateCompanyHandler
    3. Return 200 with CompanyResponse
    4. Pipeline errors are formatted by the global exception handlers
"""

import logging

from fastapi import APIRouter, Depends, Request

from company_pipeline.mediator import CancellationToken, Dispatcher
from company_pipeline.middleware.logging import record_request_type
from company_pipeline.pipeline import get_dispatcher
from company_pipeline.schemas.company import (
    CompanyResponse,
    CreateCompanyRequest,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Companies"])


@router.post(
    "/companies",
    response_model=CompanyResponse,
    responses={
        200: {"description": "Company created", "model": CompanyResponse},
        500: {"description": "Pipeline or handler failure", "model": ErrorResponse},
        503: {"description": "Request cancelled", "model": ErrorResponse},
    },
    summary="Create a company",
    description=(
        "Runs the request through the configured pipeline behaviors, which assign "
        "the company key and hash, then creates the company record. Any key or hash "
        "sent by the client is overwritten."
    ),
)
async def create_company(
    request: Request,
    body: CreateCompanyRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> CompanyResponse:
    """
    Create a company through the request pipeline.

    Error responses (handled by global exception handlers):
        HTTP 422: Body does not match CreateCompanyRequest (FastAPI default)
        HTTP 500: BehaviorFailureError / HandlerFailureError / NoHandlerRegisteredError
        HTTP 503: PipelineCancelledError
    """
    logger.debug("Received create company request: name=%s", body.name)
    record_request_type(request, type(body).__name__)
    return await dispatcher.send(body, CancellationToken())
