"""
Payment Gateway - Mercado Pago integration (checkout preferences, PIX, payment lookup)
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import mercadopago
from mercadopago.config import RequestOptions

from config import settings
from models.enums import PaymentStatus
from utils.shared_utils import utcnow

logger = logging.getLogger(__name__)

# Mercado Pago payment status -> internal order status
GATEWAY_STATUS_MAP = {
    "approved": PaymentStatus.PAID,
    "rejected": PaymentStatus.CANCELLED,
    "cancelled": PaymentStatus.CANCELLED,
    "refunded": PaymentStatus.REFUNDED,
}


class PaymentGatewayError(Exception):
    """Raised when a Mercado Pago call fails. Never retried."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def map_gateway_status(status: Optional[str]) -> PaymentStatus:
    """Map a Mercado Pago payment status to the order's payment status."""
    return GATEWAY_STATUS_MAP.get((status or "").lower(), PaymentStatus.AWAITING_PAYMENT)


def split_name(full_name: Optional[str]):
    """Split a full name into (first, last); last defaults to 'Cliente'."""
    parts = (full_name or "").split()
    if not parts:
        return "Cliente", "Cliente"
    return parts[0], " ".join(parts[1:]) or "Cliente"


class MercadoPagoGateway:
    """
    Payment gateway adapter around the Mercado Pago SDK.

    The SDK is synchronous, so each call runs in a worker thread. Any
    non-2xx answer raises PaymentGatewayError.
    """

    def __init__(self, access_token: Optional[str] = None, sdk: Any = None):
        """
        Args:
            access_token: Mercado Pago access token (defaults to settings)
            sdk: Pre-built SDK object; takes precedence over access_token
        """
        token = access_token or settings.mp_access_token
        if sdk is None and not token:
            logger.warning("MP_ACCESS_TOKEN is not set. Mercado Pago functionality will be unavailable.")
        self._sdk = sdk if sdk is not None else (mercadopago.SDK(token) if token else None)

    def _require_sdk(self):
        if self._sdk is None:
            raise PaymentGatewayError("MP_ACCESS_TOKEN is not set. Cannot reach Mercado Pago.")
        return self._sdk

    async def _call(self, operation: str, func, *args) -> Dict[str, Any]:
        try:
            result = await asyncio.to_thread(func, *args)
        except Exception as e:
            logger.error(f"Mercado Pago {operation} failed: {e}", exc_info=True)
            raise PaymentGatewayError(f"Mercado Pago {operation} failed: {e}") from e

        status = result.get("status")
        response = result.get("response") or {}
        if status not in (200, 201):
            message = response.get("message") if isinstance(response, dict) else str(response)
            logger.error(f"Mercado Pago {operation} returned {status}: {message}")
            raise PaymentGatewayError(f"Mercado Pago {operation} returned {status}: {message}", status_code=status)
        return response

    @staticmethod
    def _notification_url() -> str:
        return f"{settings.backend_url.rstrip('/')}/api/webhooks/mercadopago"

    async def create_preference(self, order: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a checkout preference for ``order``.

        Args:
            order: Order row enriched with plano_nome and plano_duracao_dias
            user: Payer profile (nome_completo, email, telefone)

        Returns:
            {"preference_id", "init_point", "sandbox_init_point"}
        """
        sdk = self._require_sdk()
        now = utcnow()
        frontend_url = settings.frontend_url.rstrip("/")
        preference_data = {
            "items": [
                {
                    "title": order.get("plano_nome") or "Plano IPTV",
                    "description": f"Acesso IPTV por {order.get('plano_duracao_dias')} dias",
                    "unit_price": float(order["valor"]),
                    "quantity": 1,
                    "currency_id": "BRL",
                }
            ],
            "payer": {
                "name": user.get("nome_completo"),
                "email": user.get("email"),
                "phone": {"number": user.get("telefone") or ""},
            },
            "back_urls": {
                "success": f"{frontend_url}/pagamento/sucesso",
                "failure": f"{frontend_url}/pagamento/falha",
                "pending": f"{frontend_url}/pagamento/pendente",
            },
            "auto_return": "approved",
            "external_reference": str(order["id"]),
            "notification_url": self._notification_url(),
            "statement_descriptor": settings.mp_statement_descriptor,
            "expires": True,
            "expiration_date_from": now.isoformat(),
            "expiration_date_to": (now + timedelta(hours=settings.mp_preference_ttl_hours)).isoformat(),
        }

        response = await self._call("preference create", sdk.preference().create, preference_data)
        logger.info(f"Mercado Pago preference {response.get('id')} created for order {order['id']}")
        return {
            "preference_id": response.get("id"),
            "init_point": response.get("init_point"),
            "sandbox_init_point": response.get("sandbox_init_point"),
        }

    async def create_pix_charge(self, order: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a PIX payment for ``order``.

        Returns:
            {"payment_id", "qr_code", "qr_code_base64", "ticket_url"}
        """
        sdk = self._require_sdk()
        first_name, last_name = split_name(user.get("nome_completo"))
        payment_data = {
            "transaction_amount": float(order["valor"]),
            "description": f"{order.get('plano_nome') or 'Plano IPTV'} - {order.get('plano_duracao_dias')} dias",
            "payment_method_id": "pix",
            "external_reference": str(order["id"]),
            "payer": {
                "email": user.get("email"),
                "first_name": first_name,
                "last_name": last_name,
            },
            "notification_url": self._notification_url(),
        }
        request_options = RequestOptions()
        request_options.custom_headers = {"x-idempotency-key": f"pix-{order['id']}"}

        response = await self._call("pix create", sdk.payment().create, payment_data, request_options)
        transaction_data = (response.get("point_of_interaction") or {}).get("transaction_data") or {}
        logger.info(f"Mercado Pago PIX payment {response.get('id')} created for order {order['id']}")
        return {
            "payment_id": str(response.get("id")),
            "qr_code": transaction_data.get("qr_code"),
            "qr_code_base64": transaction_data.get("qr_code_base64"),
            "ticket_url": transaction_data.get("ticket_url"),
        }

    async def get_payment(self, payment_id: str) -> Dict[str, Any]:
        """
        Fetch the authoritative state of a payment.

        Returns:
            {"id", "status", "status_detail", "external_reference",
             "transaction_amount", "date_approved"}
        """
        sdk = self._require_sdk()
        response = await self._call("payment get", sdk.payment().get, payment_id)
        return {
            "id": str(response.get("id", payment_id)),
            "status": response.get("status"),
            "status_detail": response.get("status_detail"),
            "external_reference": response.get("external_reference"),
            "transaction_amount": response.get("transaction_amount"),
            "date_approved": response.get("date_approved"),
        }

    async def get_payment_status(self, payment_id: str) -> str:
        """Gateway status vocabulary string for ``payment_id``."""
        payment = await self.get_payment(payment_id)
        return payment["status"]


def get_payment_gateway() -> MercadoPagoGateway:
    """Dependency: a gateway adapter built from settings for the current request."""
    return MercadoPagoGateway()
