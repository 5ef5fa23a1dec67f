from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"
ROLES = (ROLE_ADMIN, ROLE_CLIENT)


@dataclass(frozen=True)
class Principal:
    """
    Identity of the caller of a service operation.

    Built once per request by require_auth and passed explicitly into every
    service call that needs authorization, so services never read request
    globals.
    """
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def owns(self, owner_user_id: int | None) -> bool:
        return owner_user_id is not None and owner_user_id == self.id

    def can_access(self, owner_user_id: int | None) -> bool:
        """Admins see everything; everyone else sees only what they own."""
        return self.is_admin or self.owns(owner_user_id)

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(id=user.id, role=user.role)
