"""
Billing Service - Mercado Pago checkout and payment-status reconciliation
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException

from crud.order import OrderRepository, with_plan_details
from crud.plan import PlanRepository
from crud.user import UserRepository
from models.enums import PaymentStatus, can_transition
from models.user import CurrentUser
from services.notification_service import NotificationService
from services.payment_gateway import MercadoPagoGateway, map_gateway_status
from services.supabase_client import SupabaseClient
from utils.shared_utils import utcnow, to_iso

logger = logging.getLogger(__name__)


class BillingService:
    """
    Service class for payment operations on orders.

    Gateway failures (PaymentGatewayError) are not caught here: they reach
    the caller, which turns them into a 500.
    """

    def __init__(
        self,
        db: SupabaseClient,
        gateway: MercadoPagoGateway,
        notifications: Optional[NotificationService] = None,
    ):
        """
        Initialize the billing service.

        Args:
            db: BaaS client for order/plan/user rows
            gateway: Payment gateway adapter
            notifications: Emitter used when a payment is confirmed
        """
        self.orders = OrderRepository(db)
        self.plans = PlanRepository(db)
        self.users = UserRepository(db)
        self.gateway = gateway
        self.notifications = notifications

    async def _payable_order(self, order_id: Any, user: CurrentUser) -> Dict[str, Any]:
        order = await self.orders.get_user_order(order_id, user.id)
        if not order:
            raise HTTPException(status_code=404, detail="Pedido não encontrado")
        if order.get("status_pagamento") != PaymentStatus.AWAITING_PAYMENT.value:
            raise HTTPException(status_code=400, detail="Pedido já processado")
        plan = await self.plans.get_plan(order["plano_id"])
        return with_plan_details(order, plan)

    async def create_checkout(self, order: Dict[str, Any], user: CurrentUser) -> Dict[str, Any]:
        """
        Create a checkout preference for an order and remember its id.

        Args:
            order: Order row enriched with plan details
            user: Paying customer

        Returns:
            {"preference_id", "init_point", "sandbox_init_point"}
        """
        preference = await self.gateway.create_preference(order, user.model_dump())
        await self.orders.update_order(order["id"], {"mp_preference_id": preference["preference_id"]})
        return preference

    async def create_preference(self, order_id: Any, user: CurrentUser) -> Dict[str, Any]:
        order = await self._payable_order(order_id, user)
        return await self.create_checkout(order, user)

    async def create_pix(self, order_id: Any, user: CurrentUser) -> Dict[str, Any]:
        order = await self._payable_order(order_id, user)
        pix = await self.gateway.create_pix_charge(order, user.model_dump())
        await self.orders.update_order(order["id"], {"mp_payment_id": pix["payment_id"]})
        return pix

    async def get_payment_status(self, payment_id: str, user: CurrentUser) -> Dict[str, Any]:
        """Gateway view of a payment that belongs to one of the user's orders."""
        order = await self.orders.get_user_order_by_payment(payment_id, user.id)
        if not order:
            raise HTTPException(status_code=404, detail="Pagamento não encontrado")
        payment = await self.gateway.get_payment(payment_id)
        return {
            "status": payment["status"],
            "status_detail": payment["status_detail"],
            "transaction_amount": payment["transaction_amount"],
            "date_approved": payment["date_approved"],
        }

    async def process_payment_notification(self, payment_id: str) -> Dict[str, Any]:
        """
        Reconcile an order with the gateway's authoritative payment status.

        The gateway payment id plus its status form the dedup key: a delivery
        whose payment id and status are already recorded on the order changes
        nothing and emits nothing.

        Args:
            payment_id: Gateway payment id from the webhook

        Returns:
            Dict describing the outcome (order_id, status_pagamento, duplicate/ignored flags)
        """
        payment = await self.gateway.get_payment(payment_id)
        gateway_status = payment.get("status")
        external_reference = payment.get("external_reference")

        if not external_reference:
            logger.warning(f"Payment {payment_id} has no external_reference. Ignoring.")
            return {"ignored": True, "reason": "missing external_reference"}

        order = await self.orders.get_order(external_reference)
        if not order:
            logger.warning(f"Payment {payment_id} references unknown order {external_reference}. Ignoring.")
            return {"ignored": True, "reason": "unknown order"}

        new_status = map_gateway_status(gateway_status)
        try:
            current_status = PaymentStatus(order.get("status_pagamento"))
        except ValueError:
            current_status = PaymentStatus.AWAITING_PAYMENT

        if str(order.get("mp_payment_id")) == str(payment_id) and order.get("mp_status") == gateway_status:
            logger.info(f"Duplicate notification for payment {payment_id} (order {order['id']}, {gateway_status})")
            return {"order_id": order["id"], "status_pagamento": current_status.value, "duplicate": True}

        recorded_payment = order.get("mp_payment_id")
        if current_status == PaymentStatus.PAID and recorded_payment and str(recorded_payment) != str(payment_id):
            logger.warning(
                f"Ignoring payment {payment_id} ({gateway_status}) for order {order['id']}: "
                f"order is already settled by payment {recorded_payment}"
            )
            return {"order_id": order["id"], "status_pagamento": current_status.value, "ignored": True,
                    "reason": "order settled by another payment"}

        if not can_transition(current_status, new_status):
            logger.warning(
                f"Ignoring transition {current_status.value} -> {new_status.value} "
                f"for order {order['id']} (payment {payment_id}, gateway status {gateway_status})"
            )
            return {"order_id": order["id"], "status_pagamento": current_status.value, "ignored": True,
                    "reason": "transition not allowed"}

        # mp_status is the dedup key; a confirmation records it only after the fan-out completes
        confirm = new_status == PaymentStatus.PAID and map_gateway_status(order.get("mp_status")) != PaymentStatus.PAID
        updates = {
            "status_pagamento": new_status.value,
            "mp_payment_id": str(payment_id),
        }
        if not confirm:
            updates["mp_status"] = gateway_status
        if new_status == PaymentStatus.PAID and not order.get("data_pagamento"):
            updates["data_pagamento"] = to_iso(utcnow())

        updated = await self.orders.update_order(order["id"], updates) or {**order, **updates}
        logger.info(f"Order {order['id']} payment status {current_status.value} -> {new_status.value}")

        if confirm:
            if self.notifications:
                plan = await self.plans.get_plan(updated["plano_id"])
                customer = await self.users.get_user_by_id(updated["usuario_id"])
                await self.notifications.notify_payment_confirmed(with_plan_details(updated, plan), customer)
            await self.orders.update_order(order["id"], {"mp_status": gateway_status})

        return {"order_id": order["id"], "status_pagamento": new_status.value, "duplicate": False}
