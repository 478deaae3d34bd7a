"""Authentication / authorization core.

Auth is intentionally lightweight:

- Sales persons table (email/password hash + manager flag)
- A short-lived access JWT and a long-lived refresh JWT, signed with distinct secrets

The API accepts the access token from either:

- `Authorization: Bearer <token>` (useful for scripts / API clients)
- The httpOnly `access_token` cookie (set by `/api/auth/login` and `/api/auth/refresh`)

There is no server-side session record; the signed tokens are the session.
"""

from .deps import optional_auth, require_authenticated, require_manager
from .crud import bootstrap_manager_if_needed, create_sales_person
from .security import PasswordHasher
from .tokens import TokenClaims, TokenService, TokenSettings

__all__ = [
    "optional_auth",
    "require_authenticated",
    "require_manager",
    "bootstrap_manager_if_needed",
    "create_sales_person",
    "PasswordHasher",
    "TokenClaims",
    "TokenService",
    "TokenSettings",
]
