import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

# Load a local .env file if present (no-op otherwise).
load_dotenv()


_DEV_JWT_SECRET = "dev_change_me"
_DEV_JWT_REFRESH_SECRET = "dev_change_me_refresh"


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide JWT secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set SALES_REPORT_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: SALES_REPORT_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("SALES_REPORT_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("SALES_REPORT_DB_PATH", "./sales_report.sqlite")
    )

    # development | production | test
    APP_ENV: str = (os.environ.get("APP_ENV") or "development").strip().lower()

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, these default to fixed strings so you can get started.
    # In production, you MUST set both to strong, distinct random values
    # (startup refuses to run otherwise).
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", _DEV_JWT_SECRET)
    AUTH_JWT_REFRESH_SECRET: str = os.environ.get("AUTH_JWT_REFRESH_SECRET", _DEV_JWT_REFRESH_SECRET)
    AUTH_ACCESS_TOKEN_EXPIRE_SECONDS: int = int(os.environ.get("AUTH_ACCESS_TOKEN_EXPIRE_SECONDS", "3600"))  # 1 hour
    AUTH_REFRESH_TOKEN_EXPIRE_SECONDS: int = int(
        os.environ.get("AUTH_REFRESH_TOKEN_EXPIRE_SECONDS", "604800")
    )  # 7 days

    # pbkdf2_sha256 work factor. The default keeps a verify in the tens of milliseconds.
    AUTH_PASSWORD_ROUNDS: int = int(os.environ.get("AUTH_PASSWORD_ROUNDS", "200000"))

    # Bootstrap first manager if sales_persons table is empty
    AUTH_BOOTSTRAP_MANAGER_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_MANAGER_EMAIL", "admin@example.com")
    AUTH_BOOTSTRAP_MANAGER_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_MANAGER_PASSWORD", "")
    AUTH_BOOTSTRAP_MANAGER_NAME: str = os.environ.get("AUTH_BOOTSTRAP_MANAGER_NAME", "Administrator")
    AUTH_BOOTSTRAP_MANAGER_DEPARTMENT: str = os.environ.get("AUTH_BOOTSTRAP_MANAGER_DEPARTMENT", "Management")

    # Cookie-based browser sessions
    # - /api/auth/login and /api/auth/refresh set two httpOnly cookies (access + refresh)
    # - The API reads the access token from either Authorization: Bearer ... OR the cookie
    AUTH_ACCESS_COOKIE_NAME: str = os.environ.get("AUTH_ACCESS_COOKIE_NAME", "access_token")
    AUTH_REFRESH_COOKIE_NAME: str = os.environ.get("AUTH_REFRESH_COOKIE_NAME", "refresh_token")
    AUTH_COOKIE_DOMAIN: str | None = (os.environ.get("AUTH_COOKIE_DOMAIN") or "").strip() or None
    AUTH_COOKIE_PATH: str = os.environ.get("AUTH_COOKIE_PATH", "/")
    AUTH_COOKIE_SAMESITE: str = os.environ.get("AUTH_COOKIE_SAMESITE", "lax")  # lax|strict|none

    # If AUTH_COOKIE_SECURE is unset, cookies are Secure only when APP_ENV=production.
    # You can override explicitly with AUTH_COOKIE_SECURE=0/1.
    AUTH_COOKIE_SECURE: Optional[bool] = _env_bool("AUTH_COOKIE_SECURE", None)

    # -----------------
    # CORS (development)
    # -----------------
    # If the frontend dev server runs on :3000 and the API on :8000, enable credentials + allow that origin.
    # In production (same origin behind a reverse proxy) CORS is not required.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


def load_config() -> Config:
    return Config()


def validate_config(cfg: Config) -> List[str]:
    """Check settings the auth core cannot run safely without.

    Returns the list of problems. In production any problem is fatal
    (RuntimeError); elsewhere they are printed as a warning and returned.
    """

    problems: List[str] = []
    if not (cfg.DB_DSN or "").strip():
        problems.append("DB_DSN is not set (SALES_REPORT_DATABASE_URL / DATABASE_URL / SALES_REPORT_DB_PATH)")
    if not cfg.AUTH_JWT_SECRET:
        problems.append("AUTH_JWT_SECRET is not set")
    elif cfg.AUTH_JWT_SECRET == _DEV_JWT_SECRET:
        problems.append("AUTH_JWT_SECRET uses the development default")
    if not cfg.AUTH_JWT_REFRESH_SECRET:
        problems.append("AUTH_JWT_REFRESH_SECRET is not set")
    elif cfg.AUTH_JWT_REFRESH_SECRET == _DEV_JWT_REFRESH_SECRET:
        problems.append("AUTH_JWT_REFRESH_SECRET uses the development default")
    if cfg.AUTH_JWT_SECRET and cfg.AUTH_JWT_SECRET == cfg.AUTH_JWT_REFRESH_SECRET:
        problems.append("AUTH_JWT_SECRET and AUTH_JWT_REFRESH_SECRET must differ")

    if not problems:
        return problems

    msg = "Invalid configuration: " + "; ".join(problems)
    if cfg.is_production:
        raise RuntimeError(msg)
    print(f"[config] WARNING {msg}")
    return problems
