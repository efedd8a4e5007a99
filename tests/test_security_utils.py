"""
Tests for input validation and Mercado Pago signature verification
"""
import pytest

from utils.security_utils import (
    compute_mercadopago_signature,
    parse_signature_header,
    validate_email,
    validate_password_strength,
    verify_mercadopago_signature,
)

SECRET = "segredo-webhook"


def test_validate_email():
    assert validate_email("ana@example.com")
    assert not validate_email("ana@")
    assert not validate_email("")


def test_validate_password_strength():
    validate_password_strength("segredo1")
    with pytest.raises(ValueError):
        validate_password_strength("12345")
    with pytest.raises(ValueError):
        validate_password_strength("   ")


def test_parse_signature_header():
    assert parse_signature_header("ts=1704908010, v1=abc") == {"ts": "1704908010", "v1": "abc"}
    assert parse_signature_header("") == {}


def test_signature_matches_manifest():
    signature = compute_mercadopago_signature(SECRET, "123", "req-9", "1704908010")

    assert verify_mercadopago_signature(f"ts=1704908010,v1={signature}", "req-9", "123", SECRET)
    assert not verify_mercadopago_signature(f"ts=1704908011,v1={signature}", "req-9", "123", SECRET)
    assert not verify_mercadopago_signature(f"ts=1704908010,v1={signature}", "req-8", "123", SECRET)


def test_alphanumeric_data_id_is_lowercased():
    signature = compute_mercadopago_signature(SECRET, "abc123", "req-1", "1")

    assert verify_mercadopago_signature(f"ts=1,v1={signature}", "req-1", "ABC123", SECRET)


@pytest.mark.parametrize("header, request_id", [
    (None, "req-1"),
    ("ts=1,v1=abc", None),
    ("v1=abc", "req-1"),
])
def test_incomplete_signature_is_rejected(header, request_id):
    assert not verify_mercadopago_signature(header, request_id, "1", SECRET)


def test_verification_skipped_without_secret():
    assert verify_mercadopago_signature(None, None, "1", None)
