"""
Bootstrap script — seed claim statuses and create a user.

Usage (local):
    python scripts/bootstrap.py

Prompts for role, name, email, password (and hourly rate for lecturers).
Idempotent — safe to re-run; statuses are upserted and existing users skipped.
"""

import sys
import os

# Ensure the project root is on the path when run directly
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decimal import Decimal, InvalidOperation
from getpass import getpass

from sqlalchemy.exc import IntegrityError

from app.database import SessionLocal
from app.models.user import User, UserRole
from app.reference.seed import seed_statuses
from app.routers.auth import hash_password

ROLES = [UserRole.LECTURER, UserRole.COORDINATOR, UserRole.MANAGER, UserRole.HR]


def prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def main() -> None:
    print("\n=== Lecturer Claims — Bootstrap ===\n")

    # ── User ──────────────────────────────────────────────────────────────────
    role = prompt(f"Role ({', '.join(ROLES)})", UserRole.HR).upper()
    if role not in ROLES:
        print(f"ERROR: role must be one of {ROLES}.")
        sys.exit(1)

    first_name = prompt("First name")
    last_name = prompt("Last name")
    email = prompt("Email")
    if not (email and first_name and last_name):
        print("ERROR: name and email are required.")
        sys.exit(1)

    hourly_rate = Decimal("0.00")
    if role == UserRole.LECTURER:
        try:
            hourly_rate = Decimal(prompt("Hourly rate", "0.00"))
        except InvalidOperation:
            print("ERROR: hourly rate must be a number.")
            sys.exit(1)

    password = getpass("Password (min 8 chars): ")
    if len(password) < 8:
        print("ERROR: password must be at least 8 characters.")
        sys.exit(1)

    confirm = getpass("Confirm password: ")
    if password != confirm:
        print("ERROR: passwords do not match.")
        sys.exit(1)

    # ── Write to DB ───────────────────────────────────────────────────────────
    db = SessionLocal()
    try:
        count = seed_statuses(db)
        print(f"\n✓ Statuses seeded ({count} rows)")

        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"✓ User '{email}' already exists (role={existing.role}) — skipping.")
        else:
            db.add(
                User(
                    email=email,
                    hashed_password=hash_password(password),
                    role=role,
                    first_name=first_name,
                    last_name=last_name,
                    hourly_rate=hourly_rate,
                    is_active=True,
                )
            )
            print(f"✓ User '{email}' created (role={role})")

        db.commit()
        print("\n✅ Bootstrap complete. You can now log in at /auth/token\n")

    except IntegrityError as e:
        db.rollback()
        print(f"\nERROR: Database integrity error — {e.orig}")
        sys.exit(1)
    except Exception as e:
        db.rollback()
        print(f"\nERROR: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
