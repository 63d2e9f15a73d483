"""JWT issuance for API clients that exchange their API key for tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "stockbook-clients"
ISSUER = "stockbook"
ACCESS = "access"
REFRESH = "refresh"


class TokenError(ValueError):
    """The token is malformed, expired, or of the wrong type."""


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str
    jti: str | None = None
    scope: str | None = None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _claims(subject: str, lifetime: timedelta, token_type: str, scope: str | None) -> dict[str, Any]:
    issued = _now()
    claims: dict[str, Any] = {
        "sub": subject,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
        "typ": token_type,
        "aud": AUDIENCE,
        "iss": ISSUER,
        "jti": uuid4().hex,
    }
    if scope:
        claims["scope"] = scope
    return claims


def issue_token_pair(subject: str, scope: str | None = None) -> TokenPair:
    access_lifetime = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    refresh_lifetime = timedelta(days=settings.JWT_REFRESH_TTL_DAYS)
    return TokenPair(
        access_token=jwt.encode(_claims(subject, access_lifetime, ACCESS, scope), settings.JWT_SECRET, algorithm=ALGORITHM),
        refresh_token=jwt.encode(
            _claims(subject, refresh_lifetime, REFRESH, scope), settings.JWT_SECRET, algorithm=ALGORITHM
        ),
        expires_in=int(access_lifetime.total_seconds()),
    )


def decode_token(token: str, *, verify_type: str | None = None) -> TokenPayload:
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )
    except JWTError as exc:
        raise TokenError("Invalid token") from exc
    try:
        payload = TokenPayload.model_validate(decoded)
    except ValidationError as exc:
        raise TokenError("Invalid token payload") from exc
    if verify_type and payload.typ != verify_type:
        raise TokenError("Invalid token type")
    return payload


def refresh_access_token(refresh_token: str) -> TokenPair:
    payload = decode_token(refresh_token, verify_type=REFRESH)
    return issue_token_pair(payload.sub, scope=payload.scope)
