"""
Webhook Router - Mercado Pago payment notifications

Every accepted delivery is answered with 200 so the gateway stops retrying;
gateway or BaaS failures answer 500 so it re-delivers later.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from backend.utils.responses import error_response
from config import settings
from routers.dependencies import get_billing_service
from services.billing_service import BillingService
from services.payment_gateway import PaymentGatewayError
from services.supabase_client import SupabaseError
from utils.security_utils import verify_mercadopago_signature

logger = logging.getLogger(__name__)

webhook_router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


async def _read_payload(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("Mercado Pago webhook body is not valid JSON")
        return {}
    return payload if isinstance(payload, dict) else {}


@webhook_router.post("/mercadopago")
async def mercadopago_webhook(
    request: Request,
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Handle a Mercado Pago notification.

    Accepts ``{"type": "payment", "data": {"id": "..."}}`` in the body or the
    ``type`` / ``data.id`` query parameters. When MP_WEBHOOK_SECRET is set the
    ``x-signature`` header must match, otherwise the call is rejected with 401.
    """
    payload = await _read_payload(request)
    query = request.query_params
    event_type = payload.get("type") or query.get("type") or query.get("topic")
    data = payload.get("data")
    data_id = (data.get("id") if isinstance(data, dict) else None) or query.get("data.id") or query.get("id")

    if not verify_mercadopago_signature(
        request.headers.get("x-signature"),
        request.headers.get("x-request-id"),
        str(data_id or ""),
        settings.mp_webhook_secret,
    ):
        return error_response("Assinatura inválida", status=401)

    if event_type != "payment":
        logger.info(f"Ignoring Mercado Pago notification of type {event_type}")
        return {"received": True}

    if not data_id:
        logger.warning("Mercado Pago payment notification without data.id")
        return {"received": True}

    try:
        result = await billing_service.process_payment_notification(str(data_id))
    except (PaymentGatewayError, SupabaseError) as e:
        logger.error(f"Mercado Pago webhook processing failed for payment {data_id}: {e}", exc_info=True)
        return error_response("Erro ao processar webhook", status=500)

    response = {"received": True}
    if result.get("duplicate"):
        response["duplicate"] = True
    return JSONResponse(status_code=200, content=response)
