"""
Seed Admin Principal

Creates an admin principal (admins cannot sign up through the API) and
prints an access token for it.

Usage:
    python scripts/seed_admin.py --email admin@example.edu --name "Registry Admin"
"""

import argparse
import asyncio

from campuslink.core.database import async_session_maker, engine
from campuslink.core.security import create_access_token
from campuslink.modules.principals import repository
from campuslink.modules.principals.models import Role
from campuslink.modules.principals.service import register_principal


async def seed_admin(email: str, display_name: str) -> None:
    """Create the admin principal if it doesn't exist."""
    async with async_session_maker() as db:
        existing = await repository.get_by_email(db, email)

        if existing:
            print(f"Principal already exists: {email}")
            print(f"  ID: {existing.id}")
            print(f"  Role: {existing.role.value}")
            return

        admin = await register_principal(
            db, email=email, display_name=display_name, role=Role.ADMIN
        )

        token = create_access_token(
            str(admin.id),
            additional_claims={
                "email": admin.email,
                "role": admin.role.value,
                "name": display_name,
            },
        )

        print("Admin created successfully!")
        print(f"  Email: {admin.email}")
        print(f"  ID: {admin.id}")
        print(f"  Access token: {token}")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin principal")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="CampusLink Admin")
    args = parser.parse_args()

    asyncio.run(seed_admin(args.email, args.name))
