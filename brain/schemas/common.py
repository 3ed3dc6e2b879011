"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Error envelope returned for every 4xx/5xx response."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


NOT_FOUND = {404: {"model": ErrorResponse, "description": "Referenced record does not exist."}}
STORE_ERROR = {500: {"model": ErrorResponse, "description": "Data store failure."}}
