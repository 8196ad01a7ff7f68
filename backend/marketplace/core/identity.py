from dataclasses import dataclass

from ..models.user import UserRole


@dataclass(frozen=True)
class CallerIdentity:
    """Who is making a request. Passed explicitly into every service call."""

    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_technician(self) -> bool:
        return self.role == UserRole.TECHNICIAN

    @classmethod
    def from_user(cls, user) -> "CallerIdentity":
        return cls(id=user.id, role=UserRole.parse(user.role))
