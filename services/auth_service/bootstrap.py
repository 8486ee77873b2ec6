"""Admin account CLI.

Usage:
    python -m auth_service.bootstrap init-db
    python -m auth_service.bootstrap create-admin admin@example.com
    python -m auth_service.bootstrap create-admin admin@example.com --password secret
"""
import argparse
import getpass
import sys

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import SessionLocal, init_schema
from .models import User
from .passwords import hash_password
from .schemas import validate_password


def create_admin(db: Session, email: str, password: str) -> User:
    """Create an admin, or promote and re-password an existing user."""
    validate_password(password)
    email = email.strip().lower()

    user = db.scalars(select(User).where(User.email == email)).first()
    if user is None:
        user = User(email=email, password_hash=hash_password(password), is_admin=True)
        db.add(user)
    else:
        user.password_hash = hash_password(password)
        user.is_admin = True

    db.commit()
    db.refresh(user)
    return user


def cmd_init_db(args) -> int:
    init_schema()
    print("auth schema ready")
    return 0


def cmd_create_admin(args) -> int:
    password = args.password or getpass.getpass("Password: ")
    try:
        with SessionLocal() as db:
            user = create_admin(db, args.email, password)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(f"admin ready: {user.email} (id={user.id})")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="auth_service.bootstrap", description="Admin account tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init-db", help="create the auth tables")
    p_init.set_defaults(func=cmd_init_db)

    p_admin = sub.add_parser("create-admin", help="create or reset an admin account")
    p_admin.add_argument("email")
    p_admin.add_argument("--password", help="prompted when omitted")
    p_admin.set_defaults(func=cmd_create_admin)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
