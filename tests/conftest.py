"""Shared pytest fixtures for the sales report auth tests."""
import os
from dataclasses import replace

import pytest

# ---------------------------------------------------------------------------
# Deterministic test environment - set BEFORE any sales_report import, since
# Config reads os.environ when the module is first imported.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTH_JWT_SECRET", "test-access-secret-for-pytest-32chars!")
os.environ.setdefault("AUTH_JWT_REFRESH_SECRET", "test-refresh-secret-for-pytest-32chars")
os.environ.setdefault("AUTH_BOOTSTRAP_MANAGER_PASSWORD", "")

from fastapi.testclient import TestClient  # noqa: E402

from sales_report.api.server import create_app  # noqa: E402
from sales_report.auth.crud import create_sales_person  # noqa: E402
from sales_report.auth.security import PasswordHasher  # noqa: E402
from sales_report.auth.tokens import TokenService  # noqa: E402
from sales_report.config import load_config  # noqa: E402
from sales_report.db import connect, init_db  # noqa: E402


PASSWORD = "password123"

# Low work factor keeps the suite fast; production uses AUTH_PASSWORD_ROUNDS.
TEST_PASSWORD_ROUNDS = 1000


@pytest.fixture
def cfg(tmp_path):
    """Per-test config: temp SQLite DB, distinct secrets, no cookie Secure flag."""
    return replace(
        load_config(),
        DB_DSN=str(tmp_path / "test_sales_report.sqlite"),
        APP_ENV="test",
        AUTH_JWT_SECRET="test-access-secret-for-pytest-32chars!",
        AUTH_JWT_REFRESH_SECRET="test-refresh-secret-for-pytest-32chars",
        AUTH_ACCESS_TOKEN_EXPIRE_SECONDS=3600,
        AUTH_REFRESH_TOKEN_EXPIRE_SECONDS=604800,
        AUTH_PASSWORD_ROUNDS=TEST_PASSWORD_ROUNDS,
        AUTH_BOOTSTRAP_MANAGER_PASSWORD="",
        AUTH_COOKIE_SECURE=None,
        AUTH_COOKIE_SAMESITE="lax",
        AUTH_COOKIE_PATH="/",
        AUTH_COOKIE_DOMAIN=None,
    )


@pytest.fixture
def db(cfg):
    """Initialized DB; yields the DSN."""
    init_db(cfg.DB_DSN)
    return cfg.DB_DSN


@pytest.fixture
def tokens(cfg):
    return TokenService.from_config(cfg)


@pytest.fixture
def hasher(cfg):
    return PasswordHasher.from_config(cfg)


@pytest.fixture
def people(db, hasher):
    """A regular sales person and a manager, both with PASSWORD."""
    with connect(db) as conn:
        yamada = create_sales_person(
            conn,
            name="Taro Yamada",
            email="yamada@example.com",
            password=PASSWORD,
            department="Sales 1",
            hasher=hasher,
        )
        tanaka = create_sales_person(
            conn,
            name="Hanako Tanaka",
            email="tanaka@example.com",
            password=PASSWORD,
            department="Sales 1",
            is_manager=True,
            hasher=hasher,
        )
    return {"yamada": yamada, "tanaka": tanaka}


@pytest.fixture
def app(cfg):
    return create_app(cfg)


@pytest.fixture
def client(app, people):
    with TestClient(app) as c:
        yield c


def set_cookies(resp):
    """Map cookie name -> (value, lowercased attribute string) from Set-Cookie headers."""
    out = {}
    # httpx responses expose get_list, Starlette responses getlist.
    headers = resp.headers
    values = headers.getlist("set-cookie") if hasattr(headers, "getlist") else headers.get_list("set-cookie")
    for header in values:
        pair, _, attrs = header.partition(";")
        name, _, value = pair.strip().partition("=")
        out[name] = (value.strip('"'), attrs.lower())
    return out
