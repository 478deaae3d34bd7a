"""Signed access/refresh tokens (HS256 JWT).

Payload: {userId, email, isManager, iat, exp}. Access and refresh tokens
share the payload shape and differ only in secret and lifetime, so a token
of one purpose never verifies as the other.

Verification never raises: callers get a `TokenVerification` carrying either
claims or a `TokenRejection`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from sales_report.config import Config
from sales_report.models import Identity


JWT_ALG = "HS256"
ACCESS_TOKEN_TTL_SECONDS = 60 * 60  # 1 hour
REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days


class TokenPurpose(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenRejection(str, enum.Enum):
    MALFORMED = "malformed"
    SIGNATURE_MISMATCH = "signature_mismatch"
    EXPIRED = "expired"
    WRONG_PURPOSE = "wrong_purpose"
    NOT_YET_VALID = "not_yet_valid"


@dataclass(frozen=True)
class TokenSettings:
    access_secret: str
    refresh_secret: str
    access_ttl_seconds: int = ACCESS_TOKEN_TTL_SECONDS
    refresh_ttl_seconds: int = REFRESH_TOKEN_TTL_SECONDS
    algorithm: str = JWT_ALG

    @classmethod
    def from_config(cls, cfg: Config) -> "TokenSettings":
        return cls(
            access_secret=cfg.AUTH_JWT_SECRET,
            refresh_secret=cfg.AUTH_JWT_REFRESH_SECRET,
            access_ttl_seconds=int(cfg.AUTH_ACCESS_TOKEN_EXPIRE_SECONDS),
            refresh_ttl_seconds=int(cfg.AUTH_REFRESH_TOKEN_EXPIRE_SECONDS),
        )


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    is_manager: bool
    iat: int
    exp: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["TokenClaims"]:
        """Build claims from a decoded payload; None if any field has the wrong type."""
        user_id = payload.get("userId")
        email = payload.get("email")
        is_manager = payload.get("isManager")
        iat = payload.get("iat")
        exp = payload.get("exp")
        # bool is an int subclass; reject it where a number is expected.
        for v in (user_id, iat, exp):
            if not isinstance(v, int) or isinstance(v, bool):
                return None
        if not isinstance(email, str) or not isinstance(is_manager, bool):
            return None
        return cls(user_id=user_id, email=email, is_manager=is_manager, iat=iat, exp=exp)


@dataclass(frozen=True)
class TokenVerification:
    claims: Optional[TokenClaims] = None
    rejection: Optional[TokenRejection] = None

    @property
    def ok(self) -> bool:
        return self.claims is not None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: int
    refresh_expires_at: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_expiration(token: str) -> Optional[int]:
    """Read `exp` (unix seconds) without checking the signature.

    For inspection only; returns None for malformed tokens or a missing/non-integer exp.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = payload.get("exp")
    if not isinstance(exp, int) or isinstance(exp, bool):
        return None
    return exp


def is_expired(token: str, *, now: Optional[datetime] = None) -> bool:
    """True when the token is past `exp`, or when `exp` cannot be read at all."""
    exp = get_expiration(token)
    if exp is None:
        return True
    current = (now or _utcnow()).timestamp()
    return current >= exp


class TokenService:
    """Issues and verifies the access/refresh pair for one set of secrets."""

    def __init__(self, settings: TokenSettings):
        if not settings.access_secret or not settings.refresh_secret:
            raise ValueError("jwt_secret_blank")
        if settings.access_secret == settings.refresh_secret:
            raise ValueError("jwt_secrets_not_distinct")
        self.settings = settings

    @classmethod
    def from_config(cls, cfg: Config) -> "TokenService":
        return cls(TokenSettings.from_config(cfg))

    def _secret(self, purpose: TokenPurpose) -> str:
        if purpose == TokenPurpose.REFRESH:
            return self.settings.refresh_secret
        return self.settings.access_secret

    def _ttl(self, purpose: TokenPurpose) -> int:
        if purpose == TokenPurpose.REFRESH:
            return max(1, int(self.settings.refresh_ttl_seconds))
        return max(1, int(self.settings.access_ttl_seconds))

    # -----------------
    # Issue
    # -----------------

    def _issue(self, identity: Identity, purpose: TokenPurpose, now: Optional[datetime]) -> tuple[str, int]:
        issued = now or _utcnow()
        iat = int(issued.timestamp())
        exp = int((issued + timedelta(seconds=self._ttl(purpose))).timestamp())
        payload: Dict[str, Any] = {
            "userId": int(identity.id),
            "email": identity.email,
            "isManager": bool(identity.is_manager),
            "iat": iat,
            "exp": exp,
        }
        token = jwt.encode(payload, self._secret(purpose), algorithm=self.settings.algorithm)
        return token, exp

    def issue_access_token(self, identity: Identity, *, now: Optional[datetime] = None) -> str:
        return self._issue(identity, TokenPurpose.ACCESS, now)[0]

    def issue_refresh_token(self, identity: Identity, *, now: Optional[datetime] = None) -> str:
        return self._issue(identity, TokenPurpose.REFRESH, now)[0]

    def issue_pair(self, identity: Identity, *, now: Optional[datetime] = None) -> TokenPair:
        """Issue both tokens from the same instant so they carry identical identity claims."""
        issued = now or _utcnow()
        access, access_exp = self._issue(identity, TokenPurpose.ACCESS, issued)
        refresh, refresh_exp = self._issue(identity, TokenPurpose.REFRESH, issued)
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
        )

    # -----------------
    # Verify
    # -----------------

    def _signed_by(self, token: str, secret: str) -> bool:
        try:
            jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError:
            return False
        return True

    def verify(self, token: str, purpose: TokenPurpose) -> TokenVerification:
        if not token or not isinstance(token, str):
            return TokenVerification(rejection=TokenRejection.MALFORMED)

        try:
            payload = jwt.decode(
                token,
                self._secret(purpose),
                algorithms=[self.settings.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenVerification(rejection=TokenRejection.EXPIRED)
        except jwt.ImmatureSignatureError:
            # iat (or nbf) ahead of this host's clock.
            return TokenVerification(rejection=TokenRejection.NOT_YET_VALID)
        except jwt.InvalidSignatureError:
            other = TokenPurpose.ACCESS if purpose == TokenPurpose.REFRESH else TokenPurpose.REFRESH
            if self._signed_by(token, self._secret(other)):
                return TokenVerification(rejection=TokenRejection.WRONG_PURPOSE)
            return TokenVerification(rejection=TokenRejection.SIGNATURE_MISMATCH)
        except jwt.PyJWTError:
            # DecodeError, missing claims, bad algorithm header, ...
            return TokenVerification(rejection=TokenRejection.MALFORMED)

        claims = TokenClaims.from_payload(payload)
        if claims is None:
            return TokenVerification(rejection=TokenRejection.MALFORMED)
        if claims.iat > int(_utcnow().timestamp()):
            return TokenVerification(rejection=TokenRejection.NOT_YET_VALID)
        return TokenVerification(claims=claims)

    def verify_access_token(self, token: str) -> Optional[TokenClaims]:
        return self.verify(token, TokenPurpose.ACCESS).claims

    def verify_refresh_token(self, token: str) -> Optional[TokenClaims]:
        return self.verify(token, TokenPurpose.REFRESH).claims
