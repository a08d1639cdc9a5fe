from __future__ import annotations

from collections import Counter

from qualitytrack.application.interfaces.repositories import IPermissionStore
from qualitytrack.domain.entities import (MatrixCell, PermissionEntity,
                                          PermissionMatrix,
                                          PermissionStatistics,
                                          RolePermissionCount)
from qualitytrack.domain.enums import Scope
from qualitytrack.domain.value_objects.scope import parse_scope
from qualitytrack.shared.telemetry.tracing import traced


class PermissionMatrixService:
    """
    Builds the role x resource x action grid for permission administration.

    The grid is always rectangular: triples with no row, or with an
    inactive row, become not-granted cells so every checkbox is rendered.
    """

    def __init__(self, store: IPermissionStore):
        self.store = store

    @traced("authz.matrix")
    async def get_matrix(self) -> PermissionMatrix:
        roles = await self.store.get_all_roles(include_inactive=False)
        resources = await self.store.get_all_resources()
        actions = await self.store.get_all_actions()
        rows = await self.store.get_all_permissions(include_inactive=True)

        # Roles: most powerful first; resources/actions: by display name
        roles = sorted(roles, key=lambda r: (-r.hierarchy, r.name))
        resources = sorted(resources, key=lambda r: (r.display_name, r.name))
        actions = sorted(actions, key=lambda a: (a.display_name, a.name))

        by_triple: dict[tuple[int, int, int], PermissionEntity] = {}
        for row in rows:
            key = (row.role_id, row.resource_id, row.action_id)
            current = by_triple.get(key)
            # Prefer the active row if storage ever holds more than one
            if current is None or (row.is_active and not current.is_active):
                by_triple[key] = row

        cells: list[MatrixCell] = []
        for role in roles:
            for resource in resources:
                for action in actions:
                    row = by_triple.get((role.id, resource.id, action.id))
                    if row is None:
                        cells.append(
                            MatrixCell(
                                role_id=role.id,
                                resource_id=resource.id,
                                action_id=action.id,
                                granted=False,
                                scope=Scope.OWN,
                                permission_id=None,
                            )
                        )
                        continue

                    cells.append(
                        MatrixCell(
                            role_id=role.id,
                            resource_id=resource.id,
                            action_id=action.id,
                            granted=row.is_active,
                            scope=parse_scope(row.scope) or Scope.OWN,
                            permission_id=row.id,
                        )
                    )

        return PermissionMatrix(
            roles=roles, resources=resources, actions=actions, permissions=cells
        )

    async def get_statistics(self) -> PermissionStatistics:
        """Counts for the permission administration dashboard"""
        roles = await self.store.get_all_roles(include_inactive=False)
        resources = await self.store.get_all_resources()
        actions = await self.store.get_all_actions()
        rows = await self.store.get_all_permissions(include_inactive=True)

        active = [row for row in rows if row.is_active]
        by_scope: Counter[str] = Counter({scope: 0 for scope in Scope.values()})
        for row in active:
            scope = parse_scope(row.scope)
            by_scope[scope.value if scope else "unknown"] += 1

        per_role = Counter(row.role_id for row in active)
        role_counts = [
            RolePermissionCount(
                role_id=role.id,
                name=role.name,
                display_name=role.display_name,
                permission_count=per_role.get(role.id, 0),
            )
            for role in sorted(roles, key=lambda r: (-r.hierarchy, r.name))
        ]

        return PermissionStatistics(
            total_roles=len(roles),
            total_resources=len(resources),
            total_actions=len(actions),
            active_permissions=len(active),
            inactive_permissions=len(rows) - len(active),
            by_scope=dict(by_scope),
            roles=role_counts,
        )
