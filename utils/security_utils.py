"""
Security utilities: input validation and Mercado Pago webhook signature checks
"""
import hashlib
import hmac
import logging
import re
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# The BaaS auth service rejects passwords shorter than this
MIN_PASSWORD_LENGTH = 6

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(email: str) -> bool:
    """Validate email format"""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_password_strength(password: str) -> None:
    """
    Validate a new password before it reaches the BaaS auth service.

    Raises:
        ValueError: If password does not meet the requirements
    """
    if not password or not password.strip():
        raise ValueError("Senha não pode ser vazia")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")


def parse_signature_header(x_signature: str) -> Dict[str, str]:
    """'ts=1704908010,v1=abc' -> {'ts': '1704908010', 'v1': 'abc'}"""
    parts = {}
    for part in (x_signature or "").split(","):
        key, sep, value = part.partition("=")
        if sep:
            parts[key.strip()] = value.strip()
    return parts


def compute_mercadopago_signature(secret: str, data_id: str, request_id: str, ts: str) -> str:
    """HMAC-SHA256 over Mercado Pago's manifest string."""
    manifest = f"id:{data_id};request-id:{request_id};ts:{ts};"
    return hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()


def verify_mercadopago_signature(
    x_signature: Optional[str],
    x_request_id: Optional[str],
    data_id: str,
    secret: Optional[str],
) -> bool:
    """
    Verify a Mercado Pago webhook signature.

    Mercado Pago sends ``x-signature: ts=<timestamp>,v1=<hmac>`` and
    ``x-request-id``. Alphanumeric data ids are lowercased before signing.

    Returns:
        True if the signature matches, or if no secret is configured
    """
    if not secret:
        logger.warning("MP_WEBHOOK_SECRET is not set. Skipping webhook signature verification.")
        return True

    if not x_signature or not x_request_id:
        logger.warning("Mercado Pago webhook missing signature headers")
        return False

    parts = parse_signature_header(x_signature)
    ts = parts.get("ts")
    v1 = parts.get("v1")
    if not ts or not v1:
        logger.warning(f"Mercado Pago webhook signature malformed: {x_signature}")
        return False

    expected = compute_mercadopago_signature(secret, str(data_id).lower(), x_request_id, ts)
    if not hmac.compare_digest(expected, v1):
        logger.warning("Mercado Pago webhook signature mismatch")
        return False
    return True
