"""
Company Pipeline Backend: Create Company Handler
================================================

What:  Terminal handler for CreateCompanyRequest.
How:   Generates a fresh UUID for the new company and copies the request's
       current field values (as mutated by upstream behaviors) into a frozen
       CompanyResponse.
Who:   Registered as the only handler for CreateCompanyRequest in pipeline.py.

There is no persistence and no validation beyond the schema: a real
implementation would do its work here, checking the cancellation token
between steps.
"""

import logging
import uuid

from company_pipeline.mediator.base import CancellationToken, RequestHandler
from company_pipeline.schemas.company import CompanyResponse, CreateCompanyRequest

logger = logging.getLogger(__name__)


class CreateCompanyHandler(RequestHandler):
    """Produces a CompanyResponse with a new id; always succeeds."""

    async def handle(
        self,
        request: CreateCompanyRequest,
        cancellation: CancellationToken,
    ) -> CompanyResponse:
        logger.info("Creating new company")
        return CompanyResponse(
            id=uuid.uuid4(),
            name=request.name,
            address=request.address,
            key=request.key,
            hash=request.hash,
        )
