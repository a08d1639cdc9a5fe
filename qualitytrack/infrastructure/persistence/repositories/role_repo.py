from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qualitytrack.infrastructure.persistence.models.role import Role
from qualitytrack.infrastructure.persistence.models.user import User
from qualitytrack.infrastructure.persistence.repositories.base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Role)

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.db.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def list_roles(self, include_inactive: bool = False) -> list[Role]:
        """Get roles, most privileged first"""
        query = select(Role)
        if not include_inactive:
            query = query.where(Role.is_active.is_(True))
        result = await self.db.execute(query.order_by(Role.hierarchy.desc(), Role.name))
        return list(result.scalars().all())

    async def get_active_user_role(self, user_id: int) -> tuple[User, Role] | None:
        """Get an active user together with their role, None if missing or inactive"""
        result = await self.db.execute(
            select(User, Role)
            .join(Role, Role.id == User.role_id)
            .where(User.id == user_id, User.is_active.is_(True))
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]
