"""
TrialRequestRepository for the solicitacoes_teste table
"""

from typing import Any, Dict, List, Optional

from services.supabase_client import SupabaseClient
from models.enums import TrialStatus
from utils.shared_utils import utcnow, to_iso

# Statuses that block a new request
BLOCKING_STATUSES = [TrialStatus.PENDING.value, TrialStatus.APPROVED.value]


class TrialRequestRepository:
    def __init__(self, db: SupabaseClient):
        self.db = db

    async def find_blocking_request(self, user_id: str) -> Optional[Dict[str, Any]]:
        """A pending or approved request held by ``user_id``, if any."""
        return await self.db.select_one(
            "solicitacoes_teste", {"usuario_id": user_id, "status": BLOCKING_STATUSES}
        )

    async def create_request(self, user_id: str, observacoes: Optional[str] = None) -> Dict[str, Any]:
        return await self.db.insert(
            "solicitacoes_teste",
            {"usuario_id": user_id, "observacoes": observacoes, "status": TrialStatus.PENDING.value},
        )

    async def get_request(self, request_id: Any) -> Optional[Dict[str, Any]]:
        return await self.db.select_one("solicitacoes_teste", {"id": request_id})

    async def list_user_requests(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.db.select(
            "solicitacoes_teste", {"usuario_id": user_id}, order="created_at", ascending=False
        )

    async def list_requests(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self.db.select(
            "solicitacoes_teste",
            {"status": status} if status else None,
            order="created_at",
            ascending=False,
        )

    async def count_requests(self, status: Optional[str] = None) -> int:
        return await self.db.count("solicitacoes_teste", {"status": status} if status else None)

    async def record_decision(
        self,
        request_id: Any,
        status: TrialStatus,
        decided_by: str,
        observacoes_admin: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Move a pending request to a terminal status.

        The update is filtered on ``status=pendente`` so a request decided
        concurrently is not overwritten; None means nothing was updated.
        """
        now = to_iso(utcnow())
        return await self.db.update(
            "solicitacoes_teste",
            {
                "status": status.value,
                "observacoes_admin": observacoes_admin,
                "decidido_por": decided_by,
                "decidido_em": now,
                "updated_at": now,
            },
            {"id": request_id, "status": TrialStatus.PENDING.value},
        )
