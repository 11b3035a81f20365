from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.access.feature_models import Feature, Role
from app.models.enums.access_type import AccessType
from app.constants.features import (
    DEFAULT_INTERNAL_FEATURES,
    DEFAULT_EXTERNAL_FEATURES,
    DEFAULT_INTERNAL_ROLES,
    DEFAULT_EXTERNAL_ROLES,
)
from app.core.db import session_scope
import asyncio

SEEDS = {
    AccessType.internal: (DEFAULT_INTERNAL_ROLES, DEFAULT_INTERNAL_FEATURES),
    AccessType.external: (DEFAULT_EXTERNAL_ROLES, DEFAULT_EXTERNAL_FEATURES),
}


async def seed_access_control(session: AsyncSession) -> int:
    """Insert missing default roles and features; existing rows are left as edited."""
    added = 0
    for axis, (roles, features) in SEEDS.items():
        known_roles = set((await session.execute(select(Role.id).where(Role.axis == axis))).scalars())
        known_features = set((await session.execute(select(Feature.id).where(Feature.axis == axis))).scalars())

        for r in roles:
            if r["id"] not in known_roles:
                session.add(Role(axis=axis, **r))
                added += 1

        for f in features:
            if f["id"] not in known_features:
                session.add(Feature(axis=axis, id=f["id"], name=f["name"], description=f["description"],
                                    allowed_roles=list(f["allowed_roles"])))
                added += 1

    await session.commit()
    return added


async def main():
    async with session_scope() as session:
        added = await seed_access_control(session)
        print(f"Seeded {added} roles/features")

if __name__ == "__main__":
    asyncio.run(main())
