"""
Company Pipeline Backend: Pydantic Request/Response Schemas
===========================================================

What:  Pydantic models defining the API contract and the pipeline's request type.
How:   FastAPI decodes POST bodies into CreateCompanyRequest, the Dispatcher runs
       it through the pipeline, and CompanyResponse is serialized back.
Who:   Used by route handlers, pipeline behaviors and the company handler.

Mutability:
    CreateCompanyRequest is deliberately mutable: behaviors write `key` and
    `hash` in place and the handler reads them. That is the only channel
    between stages. CompanyResponse is frozen once the handler creates it.
"""

import uuid
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models: what clients send and what flows through the pipeline
# ══════════════════════════════════════════════════════════════════════════


class CreateCompanyRequest(BaseModel):
    """
    What:  Input for POST /companies and the pipeline's request type.
    Who:   Created by the route from the JSON body; mutated by AddKeyBehavior
           and AddHashBehavior; read by CreateCompanyHandler.

    `key` and `hash` are accepted from clients for wire compatibility but are
    always overwritten by the behaviors before the handler runs.
    """
    name: str = Field(description="Company name")
    address: str = Field(description="Company postal address")
    key: Optional[str] = Field(
        default=None,
        description="Company key; assigned by the pipeline (client value is ignored)",
    )
    hash: Optional[str] = Field(
        default=None,
        description="Company hash; assigned by the pipeline (client value is ignored)",
    )

    model_config = {"validate_assignment": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models: what the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class CompanyResponse(BaseModel):
    """
    What:  The generated company record.
    Who:   Created exactly once by CreateCompanyHandler; returned by POST /companies.
    """
    id: uuid.UUID = Field(description="Newly generated company identifier (UUID)")
    name: str = Field(description="Company name, echoed from the request")
    address: str = Field(description="Company address, echoed from the request")
    key: Optional[str] = Field(default=None, description="Key assigned by the pipeline")
    hash: Optional[str] = Field(default=None, description="Hash assigned by the pipeline")

    model_config = {"frozen": True}


# ══════════════════════════════════════════════════════════════════════════
# Error & Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "behavior_failure",
            "message": "Pipeline behavior 'AddKeyBehavior' failed",
            "details": {"behavior": "AddKeyBehavior"},
            "request_id": "1f0c2a9e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response with the configured pipelines.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    uptime_seconds: float = Field(description="Seconds since service started")
    request_types: List[str] = Field(description="Request types with a registered handler")
    behaviors: Dict[str, List[str]] = Field(
        description="Ordered behavior names per request type"
    )
