from dataclasses import dataclass

from fastapi import Depends, HTTPException, Header, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.db import get_db
from app.core.security import decode_access_token
from app.models.enums.access_type import AccessType
from app.models.users.user_models import User
from app.utils.logger import get_logger

logger = get_logger("auth.guard")


@dataclass(frozen=True)
class CallerContext:
    """Who is acting, passed explicitly into every service call.

    The role is intentionally not part of the context: the permission gate
    re-reads it from the user store at the moment of each action.
    """

    user_id: int
    username: str
    access_type: AccessType
    department: str | None = None
    company: str | None = None

    @property
    def is_external(self) -> bool:
        return self.access_type == AccessType.external

    @classmethod
    def from_user(cls, user: User) -> "CallerContext":
        return cls(
            user_id=user.id,
            username=user.username,
            access_type=user.access_type,
            department=user.department,
            company=user.company,
        )


async def get_current_user(
    request: Request,
    authorization: str = Header(...),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )

    token = authorization.split("Bearer ")[1].strip()
    payload = decode_access_token(token)

    username = payload.get("sub")
    token_version = payload.get("token_version")

    result = await db.execute(
        select(User).where(User.username == username)
    )
    user = result.scalars().first()

    if not user:
        logger.warning("Token user not found", extra={"username": username})
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise HTTPException(status_code=403, detail="User account is inactive")

    if user.token_version != token_version:
        logger.warning("Token version mismatch", extra={"user_id": user.id})
        raise HTTPException(status_code=401, detail="Session expired")

    request.state.user = user
    return user


async def get_caller(user: User = Depends(get_current_user)) -> CallerContext:
    return CallerContext.from_user(user)
