"""
Script to create a local admin: a user, an organization and an admin membership.

    python -m scheduler.scripts.create_local_admin --email dev@example.com --password secret1
"""

import argparse
import asyncio
from datetime import timedelta

from sqlmodel import select

from scheduler.core.auth import hash_password
from scheduler.core.config import get_settings
from scheduler.core.database import get_session_context, init_db
from scheduler.models.base import utcnow
from scheduler.models.membership import Membership
from scheduler.models.organization import Organization
from scheduler.models.user import User
from scheduler.services.resources import create_depot

settings = get_settings()


async def create_admin(email: str, password: str, organization: str, create_tables: bool = False) -> None:
    email = email.strip().lower()
    if create_tables:
        await init_db()

    async with get_session_context() as session:
        # 1. User
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if not user:
            user = User(
                username=email,
                email=email,
                password_hash=hash_password(password),
                role="admin",
            )
            session.add(user)
            await session.flush()
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        # 2. Organization owned by the user
        result = await session.execute(
            select(Organization).where(
                Organization.owner_id == user.id, Organization.name == organization
            )
        )
        org = result.scalar_one_or_none()
        if not org:
            org = Organization(
                name=organization,
                owner_id=user.id,
                plan="pro",
                subscription_status="trialing",
                trial_ends_at=utcnow() + timedelta(days=settings.trial_days),
            )
            session.add(org)
            await session.flush()
            await create_depot(
                session,
                organization_id=org.id,
                user_id=user.id,
                name="Main Depot",
                address="Address to be updated",
                enforce_quota=False,
            )
            print(f"Created organization: {organization}")

        # 3. Admin membership
        result = await session.execute(
            select(Membership).where(
                Membership.user_id == user.id, Membership.organization_id == org.id
            )
        )
        if not result.scalar_one_or_none():
            session.add(
                Membership(
                    user_id=user.id,
                    organization_id=org.id,
                    role="admin",
                    accepted_at=utcnow(),
                )
            )
            print(f"Added {email} as admin of {organization}.")

    print("Done.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--organization", default="Local Organization", help="Organization name")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create missing tables first (skips migrations)"
    )

    args = parser.parse_args()
    asyncio.run(create_admin(args.email, args.password, args.organization, args.create_tables))


if __name__ == "__main__":
    main()
