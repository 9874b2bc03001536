"""Port for standalone role records."""

from __future__ import annotations

from typing import Protocol

from identity_store.domain.identity.role import IdentityRole


class RoleStorePort(Protocol):
    """Role CRUD and lookup contract."""

    async def create(self, role: IdentityRole) -> None:
        """Persist a new role."""

    async def update(self, role: IdentityRole) -> None:
        """Replace the stored role."""

    async def delete(self, role: IdentityRole) -> None:
        """Remove the stored role."""

    async def find_by_id(self, role_id: str) -> IdentityRole | None:
        """Return role by id or None."""

    async def find_by_name(self, role_name: str) -> IdentityRole:
        """Return the first role with the name; raise when none matches."""

    async def list_roles(self) -> list[IdentityRole]:
        """Return every stored role."""
