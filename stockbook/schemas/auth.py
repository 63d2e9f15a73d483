from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """API key in the body; the ``X-API-Key`` header is accepted instead."""

    api_key: Optional[str] = Field(default=None, alias="apiKey")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {"example": {"apiKey": "stockbook-api-key"}},
    }


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class PrincipalOut(BaseModel):
    subject: str
    scheme: str
