#!/usr/bin/env python3
"""
Create an admin account for the CoachBay marketplace.

Reads credentials from .env:
    ADMIN_EMAIL      — admin account email (required)
    ADMIN_PASSWORD   — admin account password (required)
    ADMIN_NAME       — display name (optional, defaults to "Platform Admin")

Usage:
    cd coachbay-backend
    python -m scripts.create_admin
"""
from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

# Add backend root to path so imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "services" / "marketplace"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "shared"))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from sqlalchemy import func, select

from app.auth.utils import hash_password, normalize_email
from app.models.user import User
from shared.constants import Role
from shared.database.postgres import get_async_engine, session_factory_for


async def main() -> None:
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        print("Error: ADMIN_EMAIL and ADMIN_PASSWORD must be set in .env")
        sys.exit(1)
    name = os.getenv("ADMIN_NAME", "Platform Admin")
    db_url = os.environ["MARKETPLACE_DATABASE_URL"]

    engine = get_async_engine(db_url)
    session_factory = session_factory_for(engine)

    async with session_factory() as session:
        result = await session.execute(
            select(User).where(func.lower(User.email) == normalize_email(email))
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            print(f"User {email} already exists (id={existing.id}).")
            if existing.role != Role.ADMIN:
                print("  -> Not an admin account; refusing to change its role.")
            elif not existing.is_active:
                existing.is_active = True
                await session.commit()
                print("  -> Reactivated.")
            else:
                print("  -> Already an active admin. Nothing to do.")
            await engine.dispose()
            return

        user = User(
            name=name,
            email=normalize_email(email),
            password_hash=hash_password(password),
            role=Role.ADMIN,
            is_verified=True,
            is_active=True,
        )
        session.add(user)
        await session.commit()
        print(f"Admin created: {email} (id={user.id})")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
