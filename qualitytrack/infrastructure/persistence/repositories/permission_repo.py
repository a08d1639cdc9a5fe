from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qualitytrack.infrastructure.persistence.models.permission import (Action,
                                                                       Permission,
                                                                       Resource)
from qualitytrack.infrastructure.persistence.repositories.base import BaseRepository


class ResourceRepository(BaseRepository[Resource]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Resource)

    async def get_by_name(self, name: str) -> Resource | None:
        result = await self.db.execute(select(Resource).where(Resource.name == name))
        return result.scalar_one_or_none()


class ActionRepository(BaseRepository[Action]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Action)

    async def get_by_name(self, name: str) -> Action | None:
        result = await self.db.execute(select(Action).where(Action.name == name))
        return result.scalar_one_or_none()


class PermissionRepository(BaseRepository[Permission]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Permission)

    async def get_by_triple(
        self, role_id: int, resource_id: int, action_id: int
    ) -> Permission | None:
        """Get the permission row for a triple regardless of is_active"""
        result = await self.db.execute(
            select(Permission).where(
                Permission.role_id == role_id,
                Permission.resource_id == resource_id,
                Permission.action_id == action_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_for_role(
        self, role_id: int
    ) -> list[tuple[str, str, str, dict | None]]:
        """Get (resource name, action name, scope, conditions) of a role's active permissions"""
        result = await self.db.execute(
            select(Resource.name, Action.name, Permission.scope, Permission.conditions)
            .select_from(Permission)
            .join(Resource, Resource.id == Permission.resource_id)
            .join(Action, Action.id == Permission.action_id)
            .where(Permission.role_id == role_id, Permission.is_active.is_(True))
            .order_by(Resource.name, Action.name)
        )
        return [(row[0], row[1], row[2], row[3]) for row in result.all()]

    async def list_permissions(self, include_inactive: bool) -> list[Permission]:
        query = select(Permission)
        if not include_inactive:
            query = query.where(Permission.is_active.is_(True))
        result = await self.db.execute(query.order_by(Permission.id))
        return list(result.scalars().all())
