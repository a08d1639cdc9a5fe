from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qualitytrack.infrastructure.persistence.database import Base
from qualitytrack.infrastructure.persistence.models.mixins import (CreatedAtMixin,
                                                                   IntegerIdMixin,
                                                                   TimestampMixin)


class Team(IntegerIdMixin, CreatedAtMixin, Base):
    """Data entry teams"""

    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class User(IntegerIdMixin, TimestampMixin, Base):
    """
    Employees, team leaders, and admins.

    Only role_id, team_id and is_active matter for authorization.
    """

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("roles.id"), nullable=False, index=True
    )
    team_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("teams.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
