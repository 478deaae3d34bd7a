from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sales_report.config import Config
from sales_report.errors import ApiError, ErrorCode, forbidden, unauthorized

from .cookies import read_access_token
from .tokens import TokenClaims, TokenPurpose, TokenService


_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthDecision:
    """Outcome of gating one request: claims when authenticated, else the error to send."""

    claims: Optional[TokenClaims] = None
    error: Optional[ApiError] = None

    @property
    def authenticated(self) -> bool:
        return self.claims is not None


def authorize(token: Optional[str], tokens: TokenService, *, require_manager: bool = False) -> AuthDecision:
    """Gate a request on its access token.

    The manager check runs only after the token has verified; a refresh token
    presented here is rejected like any other invalid token.
    """
    if not token:
        return AuthDecision(error=unauthorized())

    result = tokens.verify(token, TokenPurpose.ACCESS)
    if result.claims is None:
        return AuthDecision(error=unauthorized())

    if require_manager and result.claims.is_manager is not True:
        return AuthDecision(error=forbidden())
    return AuthDecision(claims=result.claims)


def _app_state(request: Request) -> Tuple[Config, TokenService]:
    cfg = getattr(request.app.state, "cfg", None)
    tokens = getattr(request.app.state, "tokens", None)
    if cfg is None or tokens is None:
        raise ApiError(500, ErrorCode.INTERNAL_ERROR)
    return cfg, tokens


def _request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    cfg: Config,
) -> Optional[str]:
    # Prefer Bearer token when explicitly provided (scripts / API clients).
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    # Fall back to the session cookie (browser).
    return read_access_token(request, cfg)


def require_authenticated(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> TokenClaims:
    """Authenticate a request.

    Supports both:
      - Authorization: Bearer <jwt>
      - Cookie-based sessions (httpOnly `access_token` cookie set by /api/auth/login)

    On success the verified claims are also stored on `request.state.auth`.
    """
    cfg, tokens = _app_state(request)
    decision = authorize(_request_token(request, credentials, cfg), tokens)
    if decision.error is not None:
        raise decision.error
    request.state.auth = decision.claims
    return decision.claims


def require_manager(claims: TokenClaims = Depends(require_authenticated)) -> TokenClaims:
    if claims.is_manager is not True:
        raise forbidden()
    return claims


def optional_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Optional[TokenClaims]:
    """Claims when the request carries a valid access token, otherwise None (never rejects)."""
    cfg, tokens = _app_state(request)
    decision = authorize(_request_token(request, credentials, cfg), tokens)
    request.state.auth = decision.claims
    return decision.claims
