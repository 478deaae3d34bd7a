from __future__ import annotations

from typing import Any, Optional

from sales_report.config import Config
from sales_report.db import connect
from sales_report.models import Identity
from sales_report.util.time import utcnow_iso

from .security import PasswordHasher, hash_password, verify_password


def normalize_email(email: str) -> str:
    # Emails are compared case-sensitively; only surrounding whitespace is dropped.
    return (email or "").strip()


def get_sales_person_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM sales_persons WHERE email=?",
        (e,),
    ).fetchone()


def get_sales_person_by_id(conn: Any, sales_person_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM sales_persons WHERE sales_person_id=?",
        (int(sales_person_id),),
    ).fetchone()


def is_active(row: Any) -> bool:
    return int(row["is_active"] or 0) == 1


def get_identity(conn: Any, sales_person_id: int) -> Optional[Identity]:
    row = get_sales_person_by_id(conn, sales_person_id)
    if row is None:
        return None
    return Identity.from_row(row)


def verify_credentials(
    conn: Any, email: str, password: str, hasher: Optional[PasswordHasher] = None
) -> Optional[Any]:
    """Return the sales person row when email + password match an active account."""
    row = get_sales_person_by_email(conn, email)
    if row is None:
        return None
    if not is_active(row):
        return None
    if not verify_password(password, str(row["password_hash"]), hasher):
        return None
    return row


def create_sales_person(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    department: str = "",
    is_manager: bool = False,
    active: bool = True,
    hasher: Optional[PasswordHasher] = None,
) -> Identity:
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")
    if "@" not in e:
        raise ValueError("email_invalid")
    n = (name or "").strip()
    if not n:
        raise ValueError("name_blank")

    existing = conn.execute("SELECT 1 FROM sales_persons WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise ValueError("email_exists")

    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO sales_persons (name, email, password_hash, department, is_manager, is_active, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?)
        """,
        (n, e, hash_password(password, hasher), (department or "").strip(), 1 if is_manager else 0, 1 if active else 0, now, now),
    )
    row = get_sales_person_by_email(conn, e)
    assert row is not None
    return Identity.from_row(row)


def touch_last_login(conn: Any, sales_person_id: int) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE sales_persons SET last_login_at=?, updated_at=? WHERE sales_person_id=?",
        (now, now, int(sales_person_id)),
    )


def bootstrap_manager_if_needed(cfg: Config) -> Optional[Identity]:
    """Create the first manager if the sales_persons table is empty.

    Controlled via environment variables so a new deployment has a deterministic way to log in.

    - AUTH_BOOTSTRAP_MANAGER_EMAIL (default: admin@example.com)
    - AUTH_BOOTSTRAP_MANAGER_PASSWORD (default: unset -> nothing is created)

    This only runs when there are 0 rows in `sales_persons`.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_MANAGER_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_MANAGER_PASSWORD
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM sales_persons").fetchone()["n"]
        if int(n) > 0:
            return None

        ident = create_sales_person(
            conn,
            name=cfg.AUTH_BOOTSTRAP_MANAGER_NAME or "Administrator",
            email=email,
            password=password,
            department=cfg.AUTH_BOOTSTRAP_MANAGER_DEPARTMENT,
            is_manager=True,
            hasher=PasswordHasher.from_config(cfg),
        )
    return ident
