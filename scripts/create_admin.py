#!/usr/bin/env python3
"""
Create the first Admin user.

Usage:
    python3 scripts/create_admin.py --username admin --email admin@example.mil \
        --full-name "System Administrator" --password 'S3cure-pass'

Requirements: migrations applied (alembic upgrade head), database reachable.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mams.core.auth.models import UserRole
from mams.core.auth.service import AuthService
from mams.core.config import settings
from mams.core.database.session import async_session
from mams.core.exceptions import AppException


async def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Create an Admin user")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--full-name", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    if len(args.password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)

    print("Database:", settings.database_url.split("@")[-1] if "@" in settings.database_url else "?")
    async with async_session() as session:
        try:
            user = await AuthService(session).create_user(
                username=args.username,
                email=args.email,
                password=args.password,
                full_name=args.full_name,
                role=UserRole.ADMIN,
            )
            await session.commit()
        except AppException as exc:
            await session.rollback()
            print(f"Error: {exc.message}")
            sys.exit(1)
    print(f"Admin '{user.username}' created (id={user.id}).")


if __name__ == "__main__":
    asyncio.run(main())
