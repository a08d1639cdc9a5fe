from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qualitytrack.infrastructure.persistence.database import Base
from qualitytrack.infrastructure.persistence.models.mixins import (IntegerIdMixin,
                                                                   TimestampMixin)


class Role(IntegerIdMixin, TimestampMixin, Base):
    """
    System roles (e.g., 'admin', 'team_leader', 'employee').

    Roles are soft-disabled through is_active and never removed while
    users reference them.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True
    )  # e.g., 'admin', 'team_leader'
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    hierarchy: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # Higher = more power (1=employee, 2=team_leader, 3=admin)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
