from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..core.config import settings
from ..core.security import TokenError, issue_token_pair, refresh_access_token
from ..deps.auth import AuthContext, require_api_or_jwt
from ..schemas.auth import PrincipalOut, RefreshRequest, TokenRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

TOKEN_SUBJECT = "api-client"


@router.post("/token", response_model=TokenResponse, summary="Exchange API key for JWTs")
async def exchange_token(
    payload: TokenRequest,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    configured_key = settings.API_KEY_VALUE.strip()
    if not configured_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="API key authentication is disabled")
    provided = (payload.api_key or x_api_key or "").strip()
    if not provided or not hmac.compare_digest(provided, configured_key):
        logger.info("auth.token_refused")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    pair = issue_token_pair(subject=TOKEN_SUBJECT)
    logger.info("auth.token_issued", extra={"extra_data": {"subject": TOKEN_SUBJECT}})
    return TokenResponse(**pair.model_dump())


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
async def refresh_token(payload: RefreshRequest):
    try:
        pair = refresh_access_token(payload.refresh_token)
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return TokenResponse(**pair.model_dump())


@router.get("/me", response_model=PrincipalOut, summary="Who the current credentials belong to")
async def whoami(context: AuthContext = Depends(require_api_or_jwt)):
    return PrincipalOut(subject=context.subject, scheme=context.scheme)
