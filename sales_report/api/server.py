from __future__ import annotations

import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from sales_report import __version__
from sales_report.config import Config, load_config, validate_config
from sales_report.db import connect, init_db
from sales_report.errors import ApiError, ErrorCode, error_body, unauthorized
from sales_report.models import Identity

from sales_report.auth import optional_auth, require_authenticated, require_manager
from sales_report.auth.cookies import clear_session, read_refresh_token, write_session
from sales_report.auth.crud import bootstrap_manager_if_needed, get_sales_person_by_id, is_active
from sales_report.auth.security import PasswordHasher
from sales_report.auth.session import login, refresh_session
from sales_report.auth.tokens import TokenClaims, TokenService


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


router = APIRouter()


def _cfg(request: Request) -> Config:
    return request.app.state.cfg


def _tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def _passwords(request: Request) -> PasswordHasher:
    return request.app.state.passwords


def _claims_user(claims: TokenClaims) -> Dict[str, Any]:
    return {"id": claims.user_id, "email": claims.email, "isManager": claims.is_manager}


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str) -> str:
        v = v.strip()
        local, _, domain = v.partition("@")
        if not local or not domain or "." not in domain:
            raise ValueError("must be a valid email address")
        return v


@router.post("/api/auth/login")
def auth_login(payload: LoginRequest, request: Request, response: Response) -> Dict[str, Any]:
    cfg = _cfg(request)
    with connect(cfg.DB_DSN) as conn:
        grant = login(conn, _tokens(request), payload.email, payload.password, _passwords(request))

    # Two independent httpOnly cookies (access + refresh).
    write_session(response, grant.tokens.access_token, grant.tokens.refresh_token, cfg)
    return grant.body()


@router.post("/api/auth/refresh")
def auth_refresh(request: Request, response: Response) -> Dict[str, Any]:
    cfg = _cfg(request)
    refresh_token = read_refresh_token(request, cfg)
    with connect(cfg.DB_DSN) as conn:
        grant = refresh_session(conn, _tokens(request), refresh_token)

    write_session(response, grant.tokens.access_token, grant.tokens.refresh_token, cfg)
    return grant.body()


@router.post("/api/auth/logout")
def auth_logout(request: Request, response: Response) -> Dict[str, Any]:
    """Clear browser session cookies."""
    clear_session(response, _cfg(request))
    return {"ok": True}


@router.get("/api/auth/me")
def auth_me(request: Request, claims: TokenClaims = Depends(require_authenticated)) -> Dict[str, Any]:
    # Read from storage: the token's claims may be stale (role change, rename).
    with connect(_cfg(request).DB_DSN) as conn:
        row = get_sales_person_by_id(conn, claims.user_id)
    if row is None:
        raise ApiError(404, ErrorCode.USER_NOT_FOUND)
    if not is_active(row):
        raise unauthorized()
    return Identity.from_row(row).public()


@router.get("/api/auth/session")
def auth_session(claims: Optional[TokenClaims] = Depends(optional_auth)) -> Dict[str, Any]:
    """Non-failing probe for the frontend: is there a live access token?"""
    if claims is None:
        return {"authenticated": False, "user": None}
    return {"authenticated": True, "user": _claims_user(claims)}


@router.get("/api/auth/check-admin")
def auth_check_admin(claims: TokenClaims = Depends(require_manager)) -> Dict[str, Any]:
    return {"message": "Manager permission confirmed", "user": _claims_user(claims)}


@router.get("/api/protected")
def protected(claims: TokenClaims = Depends(require_authenticated)) -> Dict[str, Any]:
    return {"message": "Only authenticated users can access this resource", "user": _claims_user(claims)}


# -----------------------------
# Error rendering
# -----------------------------


def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details: List[Dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        details.append({"field": ".".join(loc), "message": str(err.get("msg", ""))})
    return JSONResponse(status_code=400, content=error_body(ErrorCode.VALIDATION_ERROR, details=details))


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full detail stays in the server log; the client only sees the generic code.
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    _debug(f"Unhandled error on {request.method} {request.url.path}: {exc!r}\n{tb}")
    return JSONResponse(status_code=500, content=error_body(ErrorCode.INTERNAL_ERROR))


# -----------------------------
# App
# -----------------------------


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()
    validate_config(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)

        # Bootstrap first manager if needed (only when sales_persons is empty)
        boot = bootstrap_manager_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial manager: id={boot.id} email={boot.email}")
        yield

    app = FastAPI(title="Sales Daily Report API", version=__version__, lifespan=lifespan)
    # Make config, token service and password hasher available to auth deps.
    app.state.cfg = cfg
    app.state.tokens = TokenService.from_config(cfg)
    app.state.passwords = PasswordHasher.from_config(cfg)

    # CORS is mainly needed for local development (frontend on :3000 -> API on :8000).
    # In production (single origin behind a reverse proxy) CORS is typically unnecessary.
    cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(router)
    return app


app = create_app()
