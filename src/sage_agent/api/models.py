"""
Pydantic models for Sage API requests and responses.
This module defines the request and response schemas used by the Sage API.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class MessageRequest(BaseModel):
    """Incoming user query."""

    query: str = Field(..., description="User query for Sage")
    address: Optional[str] = Field(None, description="Caller wallet address")
    private_key: Optional[str] = Field(
        None, description="Signing key, forwarded only to tools that declare it"
    )


class MessageResponse(BaseModel):
    """API response returned to the caller."""

    result: List[Dict[str, Any]]
    address: Optional[str] = None


class ToolInfo(BaseModel):
    """Public description of one registered tool."""

    name: str
    description: str
    parameters: List[Dict[str, Any]]
