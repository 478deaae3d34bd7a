"""DB layer, identity lookup, bootstrap and config validation tests."""
import sqlite3
from dataclasses import replace

import pytest

from sales_report.auth.crud import (
    bootstrap_manager_if_needed,
    create_sales_person,
    get_identity,
    get_sales_person_by_email,
    verify_credentials,
)
from sales_report.config import validate_config
from sales_report.db import _qmark_to_pct, connect, detect_dialect, init_db

from conftest import PASSWORD


class TestDb:

    def test_detect_dialect(self):
        assert detect_dialect("postgresql://u:p@localhost/db") == "postgres"
        assert detect_dialect("postgres://u:p@localhost/db") == "postgres"
        assert detect_dialect("sqlite:///tmp/x.sqlite") == "sqlite"
        assert detect_dialect("./local.sqlite") == "sqlite"
        assert detect_dialect("") == "sqlite"

    def test_placeholder_conversion_skips_literals(self):
        assert _qmark_to_pct("SELECT * FROM t WHERE a=? AND b='?'") == "SELECT * FROM t WHERE a=%s AND b='?'"
        assert _qmark_to_pct('SELECT "?" , ?') == 'SELECT "?" , %s'

    def test_init_is_idempotent(self, cfg):
        init_db(cfg.DB_DSN)
        init_db(cfg.DB_DSN)
        with connect(cfg.DB_DSN) as conn:
            n = conn.execute("SELECT COUNT(*) AS n FROM sales_persons").fetchone()["n"]
        assert n == 0

    def test_migrates_legacy_table(self, cfg):
        raw = sqlite3.connect(cfg.DB_DSN)
        raw.execute(
            """
            CREATE TABLE sales_persons (
                sales_person_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                department TEXT NOT NULL DEFAULT '',
                is_manager INTEGER NOT NULL DEFAULT 0,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        raw.commit()
        raw.close()

        init_db(cfg.DB_DSN)
        with connect(cfg.DB_DSN) as conn:
            cols = [r["name"] for r in conn.execute("PRAGMA table_info(sales_persons)").fetchall()]
        assert "last_login_at" in cols

    def test_rollback_on_error(self, db, hasher):
        with pytest.raises(RuntimeError):
            with connect(db) as conn:
                create_sales_person(conn, name="Temp", email="temp@example.com", password=PASSWORD, hasher=hasher)
                raise RuntimeError("boom")
        with connect(db) as conn:
            assert get_sales_person_by_email(conn, "temp@example.com") is None


class TestIdentityLookup:

    def test_verify_credentials(self, people, db):
        with connect(db) as conn:
            row = verify_credentials(conn, "yamada@example.com", PASSWORD)
            assert row is not None
            assert row["sales_person_id"] == people["yamada"].id
            assert verify_credentials(conn, "yamada@example.com", "nope") is None
            assert verify_credentials(conn, "", PASSWORD) is None

    def test_surrounding_whitespace_ignored(self, people, db):
        with connect(db) as conn:
            assert verify_credentials(conn, "  yamada@example.com ", PASSWORD) is not None

    def test_get_identity(self, people, db):
        with connect(db) as conn:
            ident = get_identity(conn, people["tanaka"].id)
            assert ident == people["tanaka"]
            assert get_identity(conn, 9999) is None

    def test_duplicate_email_rejected(self, people, db):
        with connect(db) as conn:
            with pytest.raises(ValueError, match="email_exists"):
                create_sales_person(conn, name="Other", email="yamada@example.com", password=PASSWORD)

    @pytest.mark.parametrize(
        "name,email,err",
        [("X", "", "email_blank"), ("X", "no-at-sign", "email_invalid"), ("  ", "x@example.com", "name_blank")],
    )
    def test_create_validation(self, db, name, email, err):
        with connect(db) as conn:
            with pytest.raises(ValueError, match=err):
                create_sales_person(conn, name=name, email=email, password=PASSWORD)

    def test_password_hash_is_stored_not_plaintext(self, people, db):
        with connect(db) as conn:
            row = get_sales_person_by_email(conn, "yamada@example.com")
        assert row["password_hash"] != PASSWORD
        assert row["password_hash"].startswith("$pbkdf2-sha256$")


class TestBootstrap:

    def test_no_password_means_no_bootstrap(self, cfg, db):
        assert bootstrap_manager_if_needed(cfg) is None

    def test_creates_manager_once(self, cfg, db):
        boot_cfg = replace(cfg, AUTH_BOOTSTRAP_MANAGER_PASSWORD="Bootstrap123")
        ident = bootstrap_manager_if_needed(boot_cfg)
        assert ident is not None
        assert ident.is_manager is True
        assert ident.email == boot_cfg.AUTH_BOOTSTRAP_MANAGER_EMAIL
        assert bootstrap_manager_if_needed(boot_cfg) is None

    def test_skipped_when_table_has_rows(self, cfg, people):
        boot_cfg = replace(cfg, AUTH_BOOTSTRAP_MANAGER_PASSWORD="Bootstrap123")
        assert bootstrap_manager_if_needed(boot_cfg) is None


class TestConfigValidation:

    def test_test_config_is_clean(self, cfg):
        assert validate_config(cfg) == []

    def test_dev_defaults_warn(self, cfg):
        dev = replace(cfg, APP_ENV="development", AUTH_JWT_SECRET="dev_change_me")
        problems = validate_config(dev)
        assert any("AUTH_JWT_SECRET" in p for p in problems)

    def test_shared_secret_flagged(self, cfg):
        same = replace(cfg, AUTH_JWT_REFRESH_SECRET=cfg.AUTH_JWT_SECRET)
        assert any("must differ" in p for p in validate_config(same))

    def test_production_is_fatal(self, cfg):
        prod = replace(cfg, APP_ENV="production", AUTH_JWT_REFRESH_SECRET="")
        with pytest.raises(RuntimeError, match="AUTH_JWT_REFRESH_SECRET"):
            validate_config(prod)
