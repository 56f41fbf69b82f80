"""Promote a user to admin role.

Usage:
    python scripts/promote_admin.py <username-or-user-id>
"""

from __future__ import annotations

import asyncio
import sys

from sqlalchemy import or_, select

from arena.infra.db import async_session_factory, init_db
from arena.models.db_models import User


async def promote(ident: str) -> None:
    await init_db()
    async with async_session_factory() as db:
        result = await db.execute(
            select(User).where(or_(User.id == ident, User.username == ident))
        )
        user = result.scalar_one_or_none()
        if user is None:
            print(f"Error: User '{ident}' not found.")
            sys.exit(1)

        if user.role == "admin":
            print(f"User '{user.username}' (id={user.id}) is already an admin.")
            return

        user.role = "admin"
        await db.commit()
        print(f"User '{user.username}' (id={user.id}) promoted to admin.")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/promote_admin.py <username-or-user-id>")
        sys.exit(1)
    asyncio.run(promote(sys.argv[1]))
