"""
Order Service - order creation, customer views and admin order management
"""

import logging
import math
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from crud.order import OrderRepository, with_plan_details
from crud.plan import PlanRepository
from crud.user import UserRepository
from models.enums import AccessStatus, PaymentStatus
from models.user import CurrentUser
from services.billing_service import BillingService
from services.email_service import EmailService
from services.notification_service import NotificationService
from services.supabase_client import SupabaseClient
from utils.shared_utils import index_by_id, parse_datetime, unique_values, utcnow, to_iso

logger = logging.getLogger(__name__)


def days_until(expiration: Any) -> int:
    """Whole days (rounded up) until ``expiration``; never negative."""
    expires_at = parse_datetime(expiration)
    if expires_at is None:
        return 0
    seconds = (expires_at - utcnow()).total_seconds()
    return max(0, math.ceil(seconds / 86400))


class OrderService:
    """Service class for order business logic."""

    def __init__(
        self,
        db: SupabaseClient,
        billing: Optional[BillingService] = None,
        email_service: Optional[EmailService] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.orders = OrderRepository(db)
        self.plans = PlanRepository(db)
        self.users = UserRepository(db)
        self.billing = billing
        self.email = email_service
        self.notifications = notifications

    async def create_order(self, plan_id: Any, user: CurrentUser) -> Dict[str, Any]:
        """
        Create an order for an active plan and obtain its payment link.

        The order's ``valor`` is the plan's ``preco`` at creation time.

        Returns:
            Order row plus plano_nome, payment_link and preference_id
        """
        plan = await self.plans.get_active_plan(plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Plano não encontrado")

        order = await self.orders.create_order(user.id, plan)
        logger.info(f"Order {order['id']} created for user {user.id} (plan {plan['id']}, R$ {plan['preco']})")

        response = with_plan_details(order, plan)
        response["payment_link"] = None
        if self.billing:
            preference = await self.billing.create_checkout(response, user)
            response["mp_preference_id"] = preference["preference_id"]
            response["payment_link"] = preference["init_point"]
            response["sandbox_payment_link"] = preference.get("sandbox_init_point")
        return response

    async def list_orders(self, user: CurrentUser) -> List[Dict[str, Any]]:
        orders = await self.orders.list_user_orders(user.id)
        plans = index_by_id(await self.plans.get_plans_by_ids(unique_values(orders, "plano_id")))
        result = []
        for order in orders:
            item = dict(order)
            item["plano_nome"] = (plans.get(order.get("plano_id")) or {}).get("nome")
            item["data_compra"] = order.get("created_at")
            result.append(item)
        return result

    async def get_order(self, order_id: Any, user: CurrentUser) -> Dict[str, Any]:
        order = await self.orders.get_user_order(order_id, user.id)
        if not order:
            raise HTTPException(status_code=404, detail="Pedido não encontrado")
        plan = await self.plans.get_plan(order["plano_id"])
        return with_plan_details(order, plan)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def admin_list_orders(
        self,
        status_pagamento: Optional[str] = None,
        status_acesso: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        orders = await self.orders.list_orders(status_pagamento, status_acesso)
        users = index_by_id(await self.users.get_users_by_ids(unique_values(orders, "usuario_id")))
        plans = index_by_id(await self.plans.get_plans_by_ids(unique_values(orders, "plano_id")))
        result = []
        for order in orders:
            customer = users.get(order.get("usuario_id")) or {}
            item = dict(order)
            item["usuario_nome"] = customer.get("nome_completo")
            item["usuario_email"] = customer.get("email")
            item["plano_nome"] = (plans.get(order.get("plano_id")) or {}).get("nome")
            item["data_compra"] = order.get("created_at")
            result.append(item)
        return result

    async def admin_update_order(
        self,
        order_id: Any,
        status_acesso: Optional[AccessStatus] = None,
        observacoes_admin: Optional[str] = None,
        clear_notes: bool = False,
    ) -> Dict[str, Any]:
        """Set access status and/or admin notes. Payment status is never touched here."""
        updates: Dict[str, Any] = {}
        if status_acesso:
            updates["status_acesso"] = AccessStatus(status_acesso).value
        if observacoes_admin is not None or clear_notes:
            updates["observacoes_admin"] = observacoes_admin

        updated = await self.orders.update_order(order_id, updates)
        if not updated:
            raise HTTPException(status_code=404, detail="Pedido não encontrado")
        return updated

    async def _order_with_customer(self, order_id: Any):
        order = await self.orders.get_order(order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Pedido não encontrado")
        customer = await self.users.get_user_by_id(order["usuario_id"])
        if not customer:
            raise HTTPException(status_code=404, detail="Usuário não encontrado")
        plan = await self.plans.get_plan(order["plano_id"])
        return order, customer, plan

    async def deliver_credentials(self, order_id: Any, credentials: str) -> Dict[str, Any]:
        """
        Release access for a paid order and email the IPTV credentials.

        Sets ``status_acesso=ativo`` and, when not yet set, the expiration
        date from the plan duration.
        """
        order, customer, plan = await self._order_with_customer(order_id)
        if order.get("status_pagamento") != PaymentStatus.PAID.value:
            raise HTTPException(status_code=400, detail="Pedido ainda não foi pago")

        updates: Dict[str, Any] = {"status_acesso": AccessStatus.ACTIVE.value}
        if not order.get("data_expiracao") and plan and plan.get("duracao_dias"):
            updates["data_expiracao"] = to_iso(utcnow() + timedelta(days=int(plan["duracao_dias"])))

        updated = await self.orders.update_order(order["id"], updates) or {**order, **updates}
        enriched = with_plan_details(updated, plan)

        email_sent = False
        if self.email:
            email_sent = await self.email.send_credentials(enriched, customer, credentials)
        if self.notifications:
            await self.notifications.notify_access_released(enriched)

        logger.info(f"Credentials delivered for order {order['id']} (email_sent={email_sent})")
        return {"message": "Credenciais enviadas", "pedido": updated, "email_enviado": email_sent}

    async def send_expiration_warning(self, order_id: Any) -> Dict[str, Any]:
        order, customer, plan = await self._order_with_customer(order_id)
        if not order.get("data_expiracao"):
            raise HTTPException(status_code=400, detail="Pedido sem data de expiração")

        days_left = days_until(order["data_expiracao"])
        email_sent = False
        if self.email:
            email_sent = await self.email.send_expiration_warning(
                with_plan_details(order, plan), customer, days_left
            )
        return {"message": "Aviso de expiração processado", "dias_restantes": days_left, "email_enviado": email_sent}
