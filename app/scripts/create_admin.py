from sqlalchemy import select

from app.models.users.user_models import User
from app.models.enums.access_type import AccessType
from app.constants.features import ADMIN_ROLE
from app.core.db import session_scope
from app.core.security import hash_password
import asyncio
import os

async def create_admin():
    username = os.getenv("ADMIN_EMAIL", "admin@company.com")
    async with session_scope() as session:
        existing = await session.scalar(select(User).where(User.username == username))
        if existing:
            print(f"User {username} already exists")
            return

        admin = User(
            username=username,
            password_hash=hash_password(os.getenv("ADMIN_PASSWORD", "admin123")),
            role=ADMIN_ROLE,
            access_type=AccessType.internal,
            department=os.getenv("ADMIN_DEPARTMENT"),
            is_active=True
        )
        session.add(admin)
        await session.commit()
        print("Admin user created!")

if __name__ == "__main__":
    asyncio.run(create_admin())
