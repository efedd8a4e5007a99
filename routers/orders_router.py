"""
Orders Router - customer orders and Mercado Pago payment endpoints
"""

import logging
from typing import Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user
from models.user import CurrentUser
from routers.dependencies import get_billing_service, get_order_service
from services.billing_service import BillingService
from services.order_service import OrderService
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

orders_router = APIRouter(prefix="/api/pedidos", tags=["pedidos"])
payment_router = APIRouter(prefix="/api/pagamento", tags=["pagamento"])


class CreateOrderRequest(BaseModel):
    plano_id: Union[int, str]


class PaymentRequest(BaseModel):
    pedido_id: Union[int, str]


@orders_router.post("", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
):
    """
    Create an order for an active plan.

    The response carries the Mercado Pago checkout link in ``payment_link``.
    """
    order = await order_service.create_order(request.plano_id, current_user)
    log_endpoint_event("/api/pedidos", current_user.id, "success", {"pedido_id": order["id"]})
    return order


@orders_router.get("")
async def list_orders(
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
):
    return await order_service.list_orders(current_user)


@orders_router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
):
    return await order_service.get_order(order_id, current_user)


@payment_router.post("/criar-preferencia")
async def create_preference(
    request: PaymentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    """New checkout preference for an order still awaiting payment."""
    preference = await billing_service.create_preference(request.pedido_id, current_user)
    return {
        "preference_id": preference["preference_id"],
        "init_point": preference["init_point"],
        "sandbox_init_point": preference.get("sandbox_init_point"),
    }


@payment_router.post("/criar-pix")
async def create_pix(
    request: PaymentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    pix = await billing_service.create_pix(request.pedido_id, current_user)
    log_endpoint_event("/api/pagamento/criar-pix", current_user.id, "success", {"payment_id": pix["payment_id"]})
    return pix


@payment_router.get("/status/{payment_id}")
async def payment_status(
    payment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    return await billing_service.get_payment_status(payment_id, current_user)
