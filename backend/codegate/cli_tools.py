#!/usr/bin/env python3
"""
CLI tool for managing access codes.
Usage: python -m codegate.cli_tools add CODE URL | list | delete ID
"""

import argparse
import sys

from .database import get_db, engine, Base
from .security import validate_target_url
from .services import AccessCodeService


def add_code(code: str, url: str):
    """Hash and store a new access code."""
    is_valid, error = validate_target_url(url)
    if not code.strip() or not is_valid:
        print(f"Cannot add code: {error or 'code must not be blank'}")
        return None

    # Ensure tables exist
    Base.metadata.create_all(bind=engine)

    db = next(get_db())
    try:
        access_code = AccessCodeService.create_code(db, code, url.strip())
        print(f"Access code {access_code.id} added -> {access_code.target_url}")
        return access_code.id
    finally:
        db.close()


def list_codes():
    """List all access codes."""
    Base.metadata.create_all(bind=engine)

    db = next(get_db())
    try:
        codes = AccessCodeService.list_codes(db)
        if not codes:
            print("No access codes found.")
            return

        print("\nAccess Codes:")
        print("-" * 80)
        print(f"{'ID':<6} {'Target URL':<50} {'Successes':<10} {'Created'}")
        print("-" * 80)
        for code in codes:
            created = code.created_at.strftime("%Y-%m-%d %H:%M") if code.created_at else "-"
            print(f"{code.id:<6} {code.target_url[:50]:<50} {code.success_count:<10} {created}")
        print("-" * 80)
    finally:
        db.close()


def delete_code(code_id: int):
    """Delete an access code by ID."""
    Base.metadata.create_all(bind=engine)

    db = next(get_db())
    try:
        if AccessCodeService.delete_code(db, code_id):
            print(f"Access code {code_id} deleted.")
            return True
        print(f"Access code {code_id} not found.")
        return False
    finally:
        db.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Access Code Management CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add a new access code")
    add_parser.add_argument("code", help="Plaintext access code (stored hashed)")
    add_parser.add_argument("url", help="Destination URL returned on a successful check")

    subparsers.add_parser("list", help="List all access codes")

    del_parser = subparsers.add_parser("delete", help="Delete an access code")
    del_parser.add_argument("id", type=int, help="ID of the code to delete")

    args = parser.parse_args(argv)

    if args.command == "add":
        return 0 if add_code(args.code, args.url) is not None else 1
    elif args.command == "list":
        list_codes()
    elif args.command == "delete":
        return 0 if delete_code(args.id) else 1
    else:
        parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
