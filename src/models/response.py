"""Common response wrapper."""

from typing import Any, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """The ``{success, data|error}`` envelope returned by every route."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
