"""Request authentication for the ``/api/v1`` routers.

A request is let through when it carries the configured API key in
``X-API-Key`` or a valid access token in ``Authorization: Bearer``. With no
API key configured the API runs open and every caller is ``anonymous``.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.config import settings
from ..core.security import ACCESS, TokenError, TokenPayload, decode_token
from ..middlewares import principal_ctx_var

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    subject: str
    scheme: str


def _reject(request: Request, detail: str) -> HTTPException:
    logger.info("auth.rejected", extra={"extra_data": {"path": request.url.path, "reason": detail}})
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bind(request: Request, context: AuthContext) -> AuthContext:
    principal_ctx_var.set(context.subject)
    request.state.principal = context.subject
    return context


def _key_matches(configured: str, provided: str) -> bool:
    return bool(configured and provided) and hmac.compare_digest(configured, provided)


def _bearer_payload(request: Request, authorization: str) -> TokenPayload:
    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        raise _reject(request, "Unsupported authorization scheme")
    try:
        return decode_token(credentials, verify_type=ACCESS)
    except TokenError as exc:
        raise _reject(request, str(exc)) from exc


async def require_api_or_jwt(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    configured_key = settings.API_KEY_VALUE
    provided_key = (x_api_key or "").strip()

    if settings.AUTH_ALLOW_API_KEY and _key_matches(configured_key, provided_key):
        return _bind(request, AuthContext(subject="api-key", scheme="api_key"))

    if authorization:
        payload = _bearer_payload(request, authorization)
        request.state.token_payload = payload
        return _bind(request, AuthContext(subject=f"jwt:{payload.sub}", scheme="jwt"))

    if not configured_key:
        return _bind(request, AuthContext(subject="anonymous", scheme="open"))

    raise _reject(request, "Invalid API key" if provided_key else "Authorization required")
