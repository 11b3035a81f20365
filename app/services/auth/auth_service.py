from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.models.users.user_models import User
from app.models.enums.access_type import AccessType
from app.core.security import verify_password, create_access_token, access_token_ttl
from app.schemas.auth.auth_schemas import LoginResponse, AuthTokens, LoginUser
from app.services.access.permission_gate import format_external_role
from app.utils.activity_helpers import emit_activity
from app.constants.activity_codes import ActivityCode
from app.utils.logger import get_logger

logger = get_logger("auth.service")


def _display_role(user: User) -> str:
    if user.access_type == AccessType.external:
        return format_external_role(user.role)
    return user.role


# =====================================================
# LOGIN
# =====================================================
async def login_user(db: AsyncSession, email: str, password: str) -> LoginResponse:
    logger.info("Authenticating user", extra={"email": email})

    result = await db.execute(
        select(User).where(User.username == email)
    )
    user = result.scalars().first()

    if not user or not verify_password(password, user.password_hash):
        logger.warning("Invalid credentials", extra={"email": email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if not user.is_active:
        logger.warning("Inactive user login blocked", extra={"email": email})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    user.last_login = datetime.now(timezone.utc)

    access_token = create_access_token(
        subject=user.username,
        token_version=user.token_version,
        expires_delta=access_token_ttl(user.role),
    )

    role = _display_role(user)

    await emit_activity(
        db=db,
        user_id=user.id,
        username=user.username,
        code=ActivityCode.LOGIN,
        actor_role=role.capitalize(),
        actor_email=user.username,
    )

    await db.commit()

    logger.info("Login successful", extra={"user_id": user.id})

    # Informational only; permissions never trust this value
    return LoginResponse(
        auth=AuthTokens(access_token=access_token),
        user=LoginUser(
            id=user.id,
            username=user.username,
            role=role,
            access_type=user.access_type,
            department=user.department,
            company=user.company,
        ),
    )


# =====================================================
# LOGOUT
# =====================================================
async def logout_user(db: AsyncSession, user: User):
    logger.info("Logging out user", extra={"user_id": user.id})

    # Invalidates every access token issued so far
    user.token_version += 1

    await emit_activity(
        db=db,
        user_id=user.id,
        username=user.username,
        code=ActivityCode.LOGOUT,
        actor_role=_display_role(user).capitalize(),
        actor_email=user.username,
    )

    await db.commit()

    logger.info("Logout successful", extra={"user_id": user.id})
