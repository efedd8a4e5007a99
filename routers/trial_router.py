"""
Trial Router - customer side of the free-trial request workflow
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from models.user import CurrentUser
from routers.dependencies import get_trial_service
from services.trial_service import TrialService

trial_router = APIRouter(prefix="/api/solicitacoes-teste", tags=["solicitacoes-teste"])


class TrialRequestCreate(BaseModel):
    observacoes: Optional[str] = None


@trial_router.post("", status_code=201)
async def request_trial(
    request: Optional[TrialRequestCreate] = None,
    current_user: CurrentUser = Depends(get_current_user),
    trial_service: TrialService = Depends(get_trial_service),
):
    observacoes = request.observacoes if request else None
    created = await trial_service.request_trial(current_user, observacoes)
    return {"message": "Solicitação enviada com sucesso", "solicitacao": created}


@trial_router.get("")
async def list_my_requests(
    current_user: CurrentUser = Depends(get_current_user),
    trial_service: TrialService = Depends(get_trial_service),
):
    return await trial_service.list_for_user(current_user)
