"""The authenticated caller as seen by the workflow."""

from __future__ import annotations

from dataclasses import dataclass

from ideation.db.enums import UserRole
from ideation.db.models import User


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: UserRole
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> Actor:
        return cls(user_id=user.id, role=UserRole(user.role), email=user.email)
