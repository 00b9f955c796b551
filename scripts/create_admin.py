"""
Create the first admin user.

    python scripts/create_admin.py --email admin@shop.local --password 'ChangeMe!2025'
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse

from fastapi import HTTPException

from app.database.database import SessionLocal
from app.modules.auth.schemas import UserCreate
from app.modules.auth.service import AuthService
from app.modules.auth.models import UserRole


def main():
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default="Administrator")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user = AuthService(db).create_user(UserCreate(
            email=args.email,
            password=args.password,
            full_name=args.full_name,
            role=UserRole.ADMIN,
        ))
        print(f"Admin created: {user.email} (id {user.id})")
    except HTTPException as e:
        print(f"Error: {e.detail}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
