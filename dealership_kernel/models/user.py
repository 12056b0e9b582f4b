"""
Module: dealership_kernel.models.user
Responsibility: ORM persistence for back-office users.  The kernel only reads
    users to check roles (mechanic assignment) and to stamp actors.
Architecture position: Kernel > Models.  May import from db/ and domain/lifecycle.
"""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dealership_kernel.db.base import SoftDeleteMixin, TrackedBase
from dealership_kernel.db.types import status_enum
from dealership_kernel.domain.lifecycle import UserRole


class User(SoftDeleteMixin, TrackedBase):
    """Back-office user (admin, cashier or mechanic)."""

    __tablename__ = "users"

    __table_args__ = (
        Index("idx_user_role", "role"),
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[UserRole] = mapped_column(status_enum(UserRole), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}: {self.role.value}>"

    @property
    def is_mechanic(self) -> bool:
        return self.role is UserRole.MECHANIC
