"""
UserRepository for BaaS operations on the usuarios and user_roles tables
"""

from typing import Any, Dict, List, Optional

from services.supabase_client import SupabaseClient
from models.enums import Role, UserStatus
from utils.shared_utils import utcnow, to_iso


class UserRepository:
    """
    Repository class for user profile and role rows.
    Identity itself (passwords, tokens) lives in the BaaS auth service.
    """

    def __init__(self, db: SupabaseClient):
        """
        Initialize the repository with a BaaS client.

        Args:
            db: SupabaseClient instance for row operations
        """
        self.db = db

    async def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a profile row by id.

        Args:
            user_id: Auth user id (also the usuarios primary key)

        Returns:
            Row dict if found, None otherwise
        """
        return await self.db.select_one("usuarios", {"id": user_id})

    async def get_users_by_ids(self, user_ids: List[str]) -> List[Dict[str, Any]]:
        if not user_ids:
            return []
        return await self.db.select("usuarios", {"id": list(user_ids)})

    async def create_user(self, user_data: dict) -> Dict[str, Any]:
        """
        Create a profile row.

        Args:
            user_data: Dictionary containing user data. Must include:
                - id: str (auth user id)
                - email: str
                Optional:
                - nome_completo: str
                - telefone: str
                - status: UserStatus (defaults to ACTIVE)

        Returns:
            Created row
        """
        row = {
            "id": user_data["id"],
            "email": user_data["email"].lower(),
            "nome_completo": user_data.get("nome_completo"),
            "telefone": user_data.get("telefone"),
            "status": UserStatus(user_data.get("status", UserStatus.ACTIVE)).value,
        }
        return await self.db.insert("usuarios", row)

    async def update_user(self, user_id: str, updates: dict) -> Optional[Dict[str, Any]]:
        """
        Update profile fields; ``updated_at`` is always refreshed.

        Returns:
            Updated row, or None if no row matched
        """
        values = dict(updates)
        values["updated_at"] = to_iso(utcnow())
        return await self.db.update("usuarios", values, {"id": user_id})

    async def list_users(self, status: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = {"status": status} if status else None
        return await self.db.select(
            "usuarios",
            filters,
            order="created_at",
            ascending=False,
            search=(["nome_completo", "email"], search) if search else None,
        )

    async def count_users(self, status: Optional[str] = None) -> int:
        return await self.db.count("usuarios", {"status": status} if status else None)

    async def get_role(self, user_id: str) -> Role:
        """Single authorization lookup; users without a role row are customers."""
        row = await self.db.select_one("user_roles", {"user_id": user_id}, columns="role")
        if row and row.get("role") == Role.ADMIN.value:
            return Role.ADMIN
        return Role.CUSTOMER

    async def assign_role(self, user_id: str, role: Role = Role.CUSTOMER) -> Dict[str, Any]:
        return await self.db.insert("user_roles", {"user_id": user_id, "role": role.value})

    async def get_any_admin_id(self) -> Optional[str]:
        """Id of one admin user, used as the recipient of admin notifications."""
        row = await self.db.select_one("user_roles", {"role": Role.ADMIN.value}, columns="user_id")
        return row["user_id"] if row else None
