"""
Seed an admin account.
Run from project root: python scripts/create_admin.py admin@example.com s3cret-pass
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from orderdesk.core.exceptions import ValidationError
from orderdesk.database import async_session_maker, engine, init_db
from orderdesk.models import UserRole
from orderdesk.services.auth import AuthService


async def create_admin(email: str, password: str, name: str) -> int:
    await init_db()
    async with async_session_maker() as session:
        try:
            user = await AuthService(session).create_user(email, password, UserRole.ADMIN, name)
        except ValidationError as e:
            print(f"❌ {e.message}")
            return 1
    await engine.dispose()
    print(f"✅ Admin {user.email} created (id {user.id})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default="Admin")
    args = parser.parse_args()

    sys.exit(asyncio.run(create_admin(args.email, args.password, args.name)))
