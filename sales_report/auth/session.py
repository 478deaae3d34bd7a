"""Login and refresh flows.

Both end in a `SessionGrant`: a freshly issued access/refresh pair for an
identity read from storage. Writing the pair to cookies is left to the
endpoint (see `cookies.write_session`).

Refresh is stateless: there is no denylist, so an older refresh token stays
valid until its own `exp` even after the session has been refreshed. The
only server-side check is the identity row itself: it must still exist and
be active.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sales_report.errors import ApiError, ErrorCode
from sales_report.models import Identity
from sales_report.util.time import epoch_to_iso

from .crud import get_sales_person_by_id, is_active, touch_last_login, verify_credentials
from .security import PasswordHasher
from .tokens import TokenPair, TokenPurpose, TokenService


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


@dataclass(frozen=True)
class SessionGrant:
    identity: Identity
    tokens: TokenPair

    def body(self) -> Dict[str, Any]:
        return {
            "token": self.tokens.access_token,
            "expires_at": epoch_to_iso(self.tokens.access_expires_at),
            "user": self.identity.public(),
        }


def login(
    conn: Any,
    tokens: TokenService,
    email: str,
    password: str,
    hasher: Optional[PasswordHasher] = None,
) -> SessionGrant:
    row = verify_credentials(conn, email, password, hasher)
    if row is None:
        # Same answer for unknown email, inactive account and wrong password.
        raise ApiError(401, ErrorCode.AUTH_INVALID_CREDENTIALS)

    identity = Identity.from_row(row)
    touch_last_login(conn, identity.id)
    return SessionGrant(identity=identity, tokens=tokens.issue_pair(identity))


def refresh_session(conn: Any, tokens: TokenService, refresh_token: Optional[str]) -> SessionGrant:
    if not refresh_token:
        raise ApiError(401, ErrorCode.REFRESH_TOKEN_MISSING)

    result = tokens.verify(refresh_token, TokenPurpose.REFRESH)
    if result.claims is None:
        _debug(f"refresh rejected: {result.rejection.value if result.rejection else 'unknown'}")
        raise ApiError(401, ErrorCode.REFRESH_TOKEN_INVALID)

    # Re-read the identity so role/email changes since issuance are picked up.
    row = get_sales_person_by_id(conn, result.claims.user_id)
    if row is None:
        raise ApiError(404, ErrorCode.USER_NOT_FOUND)
    # A deactivated account loses its session at the next refresh.
    if not is_active(row):
        _debug(f"refresh rejected: sales person {result.claims.user_id} is inactive")
        raise ApiError(401, ErrorCode.REFRESH_TOKEN_INVALID)

    identity = Identity.from_row(row)
    return SessionGrant(identity=identity, tokens=tokens.issue_pair(identity))
