"""
Trial Service for the free-trial request workflow (pendente -> aprovado | rejeitado)
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from crud.trial_request import TrialRequestRepository
from crud.user import UserRepository
from models.enums import TrialStatus
from models.user import CurrentUser
from services.notification_service import NotificationService
from services.supabase_client import SupabaseClient
from utils.shared_utils import index_by_id, unique_values

logger = logging.getLogger(__name__)


class TrialService:
    """
    Service for managing free-trial requests.
    Handles request creation, listing and admin decisions.
    """

    def __init__(self, db: SupabaseClient, notifications: Optional[NotificationService] = None):
        """
        Initialize the trial service.

        Args:
            db: BaaS client
            notifications: Emitter used to tell the user about a decision
        """
        self.requests = TrialRequestRepository(db)
        self.users = UserRepository(db)
        self.notifications = notifications

    async def request_trial(self, user: CurrentUser, observacoes: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a pending trial request.

        A user holding a pending or approved request cannot open another one.

        Raises:
            HTTPException 400 if a blocking request exists
        """
        existing = await self.requests.find_blocking_request(user.id)
        if existing:
            if existing.get("status") == TrialStatus.PENDING.value:
                raise HTTPException(status_code=400, detail="Você já possui uma solicitação pendente")
            raise HTTPException(status_code=400, detail="Você já possui um teste aprovado")

        created = await self.requests.create_request(user.id, observacoes)
        logger.info(f"Trial request {created.get('id')} created for user {user.id}")
        return created

    async def list_for_user(self, user: CurrentUser) -> List[Dict[str, Any]]:
        return await self.requests.list_user_requests(user.id)

    async def list_all(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        requests = await self.requests.list_requests(status)
        users = index_by_id(await self.users.get_users_by_ids(unique_values(requests, "usuario_id")))
        result = []
        for request in requests:
            owner = users.get(request.get("usuario_id")) or {}
            item = dict(request)
            item["usuario_nome"] = owner.get("nome_completo")
            item["usuario_email"] = owner.get("email")
            item["usuario_telefone"] = owner.get("telefone")
            result.append(item)
        return result

    async def decide(
        self,
        request_id: Any,
        status: TrialStatus,
        admin: CurrentUser,
        observacoes_admin: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve or reject a pending request.

        Args:
            request_id: Trial request id
            status: TrialStatus.APPROVED or TrialStatus.REJECTED
            admin: Deciding administrator (recorded as decidido_por)
            observacoes_admin: Optional note shown to the user on rejection

        Returns:
            Updated request row
        """
        if status not in (TrialStatus.APPROVED, TrialStatus.REJECTED):
            raise HTTPException(status_code=400, detail="Status inválido")

        existing = await self.requests.get_request(request_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Solicitação não encontrada")
        if existing.get("status") != TrialStatus.PENDING.value:
            raise HTTPException(status_code=400, detail="Solicitação já processada")

        updated = await self.requests.record_decision(request_id, status, admin.id, observacoes_admin)
        if not updated:
            # Decided by someone else between the read and the update
            raise HTTPException(status_code=400, detail="Solicitação já processada")

        logger.info(f"Trial request {request_id} {status.value} by admin {admin.id}")
        if self.notifications:
            await self.notifications.notify_trial_decision(existing["usuario_id"], status, observacoes_admin)
        return updated
