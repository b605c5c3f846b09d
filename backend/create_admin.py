"""Create an administrator account in the configured database.

Usage:
    python -m backend.create_admin --name "Ada Admin" --email admin@example.com --password secret
"""
import argparse
import sys

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from backend.database import Base, SessionLocal, engine, ensure_learning_schema
from backend.models import course, enrollment, progress, user  # noqa: F401
from backend.models.user import Role
from backend.routes.auth_routes import RegisterRequest, create_account


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Learnify admin account.")
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    try:
        data = RegisterRequest(name=args.name, email=args.email, password=args.password)
    except ValidationError as exc:
        print(f"Invalid admin details: {exc}", file=sys.stderr)
        return 1

    try:
        Base.metadata.create_all(bind=engine)
        ensure_learning_schema(engine)
    except SQLAlchemyError as exc:
        print(f"Database initialization failed: {exc}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        admin = create_account(db, data, Role.ADMIN)
    except HTTPException as exc:
        print(f"Could not create admin: {exc.detail}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Admin {admin.email} created with id {admin.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
