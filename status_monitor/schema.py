from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AdminConfigRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    password: str = Field(..., max_length=1024)
    # Stored verbatim; only checked to be a JSON object.
    config: Any = None


class ErrorResponse(BaseModel):
    error: str


class SuccessResponse(BaseModel):
    success: bool = True
