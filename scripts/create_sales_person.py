"""Create a sales person (login account) in the DB.

Usage:
  python scripts/create_sales_person.py --name 'Taro Yamada' --email yamada@example.com \
      --password '...' --department 'Sales 1' [--manager]

The password must be at least 8 characters with upper, lower and a digit.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sales_report.config import load_config
from sales_report.db import init_db, connect
from sales_report.auth.crud import create_sales_person
from sales_report.auth.security import PasswordHasher, validate_password_strength


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--department", default="")
    ap.add_argument("--manager", action="store_true", help="grant the manager role")
    args = ap.parse_args()

    ok, errors = validate_password_strength(args.password)
    if not ok:
        print("Password rejected: " + ", ".join(errors))
        sys.exit(2)

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        try:
            ident = create_sales_person(
                conn,
                name=args.name,
                email=args.email,
                password=args.password,
                department=args.department,
                is_manager=args.manager,
                hasher=PasswordHasher.from_config(cfg),
            )
        except ValueError as e:
            print(f"Could not create sales person: {e}")
            sys.exit(1)

    print("Created sales person:")
    print(ident.public())


if __name__ == "__main__":
    main()
