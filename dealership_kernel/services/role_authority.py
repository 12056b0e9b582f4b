"""
RoleAuthority -- the seam to the authentication collaborator.

Authentication happens outside the kernel.  Inside it, the only questions
asked about a user are "does this actor exist and is it active?" and "does
this user hold role X?", e.g. before assigning a work order to a mechanic.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealership_kernel.domain.lifecycle import UserRole
from dealership_kernel.exceptions import NotFoundError, RoleMismatchError, ValidationError
from dealership_kernel.logging_config import get_logger
from dealership_kernel.models.user import User

logger = get_logger("services.roles")


class RoleAuthority:
    def __init__(self, session: Session):
        self._session = session

    def _get_active_user(self, user_id: UUID) -> User:
        user = self._session.execute(
            select(User).where(User.id == user_id, User.not_deleted())
        ).scalar_one_or_none()
        if user is None:
            raise NotFoundError("User", str(user_id))
        if not user.is_active:
            raise ValidationError("user_id", f"user {user_id} is inactive")
        return user

    def require_actor(self, actor_id: UUID) -> UserRole:
        """Return the actor's role; the actor must exist and be active."""
        return self._get_active_user(actor_id).role

    def require_role(self, user_id: UUID, role: UserRole) -> None:
        """
        Raise RoleMismatchError unless ``user_id`` holds ``role``.

        Raises:
            NotFoundError: Unknown or deleted user.
            ValidationError: Inactive user.
            RoleMismatchError: Wrong role.
        """
        user = self._get_active_user(user_id)
        if user.role is not role:
            logger.warning(
                "role_check_failed",
                extra={
                    "user_id": str(user_id),
                    "required_role": role.value,
                    "actual_role": user.role.value,
                },
            )
            raise RoleMismatchError(str(user_id), role.value, user.role.value)

    def first_active(self, role: UserRole) -> UUID | None:
        """Id of the first active user holding ``role``, by username."""
        return self._session.execute(
            select(User.id)
            .where(User.role == role, User.is_active.is_(True), User.not_deleted())
            .order_by(User.username)
            .limit(1)
        ).scalar_one_or_none()
