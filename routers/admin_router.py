"""
Admin Router - plan catalog management, order/user/trial administration
and dashboard statistics. Every route requires the admin role.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from auth import require_admin
from crud.order import OrderRepository
from crud.plan import PlanRepository
from crud.trial_request import TrialRequestRepository
from crud.user import UserRepository
from database import get_db
from models.enums import AccessStatus, TrialStatus, UserStatus
from models.user import CurrentUser
from routers.dependencies import get_order_service, get_statistics_service, get_trial_service
from services.order_service import OrderService
from services.statistics_service import StatisticsService
from services.supabase_client import SupabaseClient
from services.trial_service import TrialService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

admin_router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


# Request models
class PlanCreate(BaseModel):
    nome: str
    descricao: Optional[str] = None
    preco: float = Field(..., gt=0)
    duracao_dias: int = Field(..., gt=0)
    recursos: Optional[List[str]] = None
    ativo: Optional[bool] = True


class PlanUpdate(BaseModel):
    nome: Optional[str] = None
    descricao: Optional[str] = None
    preco: Optional[float] = Field(default=None, gt=0)
    duracao_dias: Optional[int] = Field(default=None, gt=0)
    recursos: Optional[List[str]] = None
    ativo: Optional[bool] = None


class OrderUpdate(BaseModel):
    status_acesso: Optional[AccessStatus] = None
    observacoes_admin: Optional[str] = None


class CredentialsDelivery(BaseModel):
    credenciais: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    nome_completo: Optional[str] = None
    telefone: Optional[str] = None
    status: Optional[UserStatus] = None


class TrialDecision(BaseModel):
    status: str
    observacoes_admin: Optional[str] = None


# ----------------------------------------------------------------------
# Plans
# ----------------------------------------------------------------------

@admin_router.get("/planos")
async def list_all_plans(db: SupabaseClient = Depends(get_db)):
    return await PlanRepository(db).list_all()


@admin_router.post("/planos", status_code=201)
async def create_plan(
    request: PlanCreate,
    admin: CurrentUser = Depends(require_admin),
    db: SupabaseClient = Depends(get_db),
):
    plan = await PlanRepository(db).create_plan(request.model_dump())
    log_endpoint_event("/api/admin/planos", admin.id, "created", {"plano_id": plan.get("id")})
    return plan


@admin_router.put("/planos/{plan_id}")
async def update_plan(plan_id: str, request: PlanUpdate, db: SupabaseClient = Depends(get_db)):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nenhum campo para atualizar")
    plan = await PlanRepository(db).update_plan(plan_id, updates)
    if not plan:
        raise HTTPException(status_code=404, detail="Plano não encontrado")
    return plan


# ----------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------

@admin_router.get("/pedidos")
async def list_all_orders(
    status_pagamento: Optional[str] = Query(None),
    status_acesso: Optional[str] = Query(None),
    order_service: OrderService = Depends(get_order_service),
):
    return await order_service.admin_list_orders(status_pagamento, status_acesso)


@admin_router.put("/pedidos/{order_id}")
async def update_order(
    order_id: str,
    request: OrderUpdate,
    order_service: OrderService = Depends(get_order_service),
):
    fields = request.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="Nenhum campo para atualizar")
    return await order_service.admin_update_order(
        order_id,
        status_acesso=fields.get("status_acesso"),
        observacoes_admin=fields.get("observacoes_admin"),
        clear_notes="observacoes_admin" in fields,
    )


@admin_router.post("/pedidos/{order_id}/credenciais")
async def deliver_credentials(
    order_id: str,
    request: CredentialsDelivery,
    admin: CurrentUser = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
):
    """Release access for a paid order and email the IPTV credentials."""
    result = await order_service.deliver_credentials(order_id, request.credenciais)
    log_endpoint_event(
        "/api/admin/pedidos/credenciais", admin.id, "success",
        {"pedido_id": order_id, "email_enviado": result["email_enviado"]},
    )
    return result


@admin_router.post("/pedidos/{order_id}/aviso-expiracao")
async def send_expiration_warning(order_id: str, order_service: OrderService = Depends(get_order_service)):
    return await order_service.send_expiration_warning(order_id)


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------

@admin_router.get("/usuarios")
async def list_users(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: SupabaseClient = Depends(get_db),
):
    """Users, newest first; ``search`` matches name or email (case-insensitive)."""
    return await UserRepository(db).list_users(status, search.strip() if search else None)


@admin_router.get("/usuarios/{user_id}")
async def get_user(user_id: str, db: SupabaseClient = Depends(get_db)):
    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")

    result = dict(user)
    result["pedidos"] = await OrderRepository(db).list_user_orders(user_id)
    result["solicitacoes_teste"] = await TrialRequestRepository(db).list_user_requests(user_id)
    return result


@admin_router.put("/usuarios/{user_id}")
async def update_user(
    user_id: str,
    request: UserUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: SupabaseClient = Depends(get_db),
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nenhum campo para atualizar")
    if updates.get("status") is not None:
        updates["status"] = UserStatus(updates["status"]).value

    user = await UserRepository(db).update_user(user_id, updates)
    if not user:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    log_endpoint_event("/api/admin/usuarios", admin.id, "updated", {"usuario_id": user_id, **updates})
    return user


# ----------------------------------------------------------------------
# Trial requests
# ----------------------------------------------------------------------

@admin_router.get("/solicitacoes-teste")
async def list_trial_requests(
    status: Optional[str] = Query(None),
    trial_service: TrialService = Depends(get_trial_service),
):
    return await trial_service.list_all(status)


@admin_router.put("/solicitacoes-teste/{request_id}")
async def decide_trial_request(
    request_id: str,
    request: TrialDecision,
    admin: CurrentUser = Depends(require_admin),
    trial_service: TrialService = Depends(get_trial_service),
):
    try:
        status = TrialStatus(request.status)
    except ValueError:
        raise HTTPException(status_code=400, detail="Status inválido")
    return await trial_service.decide(request_id, status, admin, request.observacoes_admin)


# ----------------------------------------------------------------------
# Statistics
# ----------------------------------------------------------------------

@admin_router.get("/estatisticas")
async def get_statistics(statistics_service: StatisticsService = Depends(get_statistics_service)):
    return await statistics_service.get_statistics()
