"""Session transport: the access/refresh pair as two httpOnly cookies.

Each cookie is written with its own `Set-Cookie` header (Starlette appends one
header per `set_cookie` call). Clearing re-sets the same name/path/domain/flags
with `Max-Age=0`; browsers ignore a clear whose attributes differ.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, Response

from sales_report.config import Config


def cookie_secure(cfg: Config) -> bool:
    """Return whether auth cookies should be marked Secure."""
    samesite = str(cfg.AUTH_COOKIE_SAMESITE or "lax").lower()
    # Browsers require Secure when SameSite=None
    if samesite == "none":
        return True
    if cfg.AUTH_COOKIE_SECURE is not None:
        return bool(cfg.AUTH_COOKIE_SECURE)
    return cfg.is_production


def _cookie_attrs(cfg: Config) -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": cookie_secure(cfg),
        "samesite": str(cfg.AUTH_COOKIE_SAMESITE or "lax").lower(),
        "path": str(cfg.AUTH_COOKIE_PATH or "/"),
        "domain": cfg.AUTH_COOKIE_DOMAIN,
    }


def write_session(response: Response, access_token: str, refresh_token: str, cfg: Config) -> None:
    attrs = _cookie_attrs(cfg)
    response.set_cookie(
        key=cfg.AUTH_ACCESS_COOKIE_NAME,
        value=str(access_token),
        max_age=int(cfg.AUTH_ACCESS_TOKEN_EXPIRE_SECONDS),
        **attrs,
    )
    response.set_cookie(
        key=cfg.AUTH_REFRESH_COOKIE_NAME,
        value=str(refresh_token),
        max_age=int(cfg.AUTH_REFRESH_TOKEN_EXPIRE_SECONDS),
        **attrs,
    )


def clear_session(response: Response, cfg: Config) -> None:
    attrs = _cookie_attrs(cfg)
    for name in (cfg.AUTH_ACCESS_COOKIE_NAME, cfg.AUTH_REFRESH_COOKIE_NAME):
        response.set_cookie(key=name, value="", max_age=0, **attrs)


def _read(request: Request, name: str) -> Optional[str]:
    value = request.cookies.get(name)
    return value or None


def read_access_token(request: Request, cfg: Config) -> Optional[str]:
    return _read(request, cfg.AUTH_ACCESS_COOKIE_NAME)


def read_refresh_token(request: Request, cfg: Config) -> Optional[str]:
    return _read(request, cfg.AUTH_REFRESH_COOKIE_NAME)
