# backend/rentals/cli/__main__.py
from __future__ import annotations

import argparse

from rentals.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m rentals.cli")
    sub = p.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="seed demo users, properties and leads")
    seed.add_argument("--admin-email", default="admin@rentals.local")
    seed.add_argument("--admin-password", default="admin-demo-1")
    seed.add_argument("--partner-email", default="partner@rentals.local")
    seed.add_argument("--create-tables", action="store_true", help="create tables without alembic (sqlite dev)")
    args = p.parse_args()

    if args.command == "seed":
        out = seed_demo(
            admin_email=args.admin_email,
            admin_password=args.admin_password,
            partner_email=args.partner_email,
            create_tables=args.create_tables,
        )
        print(
            {
                "ok": True,
                "admin_email": out.admin_email,
                "partner_email": out.partner_email,
                "property_ids": list(out.property_ids),
                "lead_ids": list(out.lead_ids),
            }
        )


if __name__ == "__main__":
    main()
