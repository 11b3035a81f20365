from sqlalchemy.ext.asyncio import AsyncSession

from app.models.support.activity_models import UserActivity
from app.constants.activity_templates import ACTIVITY_TEMPLATES
from app.constants.activity_codes import ActivityCode


def render_activity(code: ActivityCode, **context) -> str:
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        return template.format(**context)
    except KeyError as e:
        raise ValueError(
            f"Missing activity context key: {e.args[0]} for {code}"
        )


async def emit_activity(
    db: AsyncSession,
    *,
    user_id: int | None,
    username: str,
    code: ActivityCode,
    **context,
):
    """Stage a UserActivity row; the caller's commit persists it with the change."""
    db.add(
        UserActivity(
            user_id=user_id,
            username_snapshot=username,
            message=render_activity(code, **context),
        )
    )


async def emit_caller_activity(db: AsyncSession, caller, role: str | None, code: ActivityCode, **context):
    await emit_activity(
        db=db,
        user_id=caller.user_id,
        username=caller.username,
        code=code,
        actor_role=(role or "unknown").capitalize(),
        actor_email=caller.username,
        **context,
    )
