"""
Tests for template rendering and best-effort SMTP delivery
"""
import smtplib

import pytest

from services.email_service import EmailService, format_brl, format_date_br


class RecordingSMTP:
    """Context-manager SMTP double that keeps the messages it was given."""

    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.messages = []
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, message):
        self.messages.append(message)


class RefusingSMTP(RecordingSMTP):
    def send_message(self, message):
        raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"mailbox unavailable")})


ORDER = {"id": 12, "valor": 1234.5, "plano_nome": "Anual", "plano_duracao_dias": 365,
         "data_expiracao": "2026-03-01T10:00:00+00:00"}
USER = {"nome_completo": "Ana <b>Lima</b>", "email": "ana@example.com", "telefone": "11911112222"}


def make_service(factory=RecordingSMTP, **overrides):
    options = dict(host="smtp.test", port=2525, username="no-reply@iptv.test", password="pw",
                   use_tls=True, from_name="IPTV Revenda", smtp_factory=factory)
    options.update(overrides)
    return EmailService(**options)


def test_format_helpers():
    assert format_brl(1234.5) == "1.234,50"
    assert format_brl("29.9") == "29,90"
    assert format_date_br("2026-03-01T10:00:00Z") == "01/03/2026"
    assert format_date_br(None) == ""


def test_render_escapes_user_content():
    html = make_service().render("payment_confirmation.html", order=ORDER, user=USER)

    assert "Ana &lt;b&gt;Lima&lt;/b&gt;" in html
    assert "1.234,50" in html
    assert "Anual" in html


@pytest.mark.asyncio
async def test_send_delivers_html_message():
    RecordingSMTP.instances = []
    service = make_service()

    sent = await service.send_expiration_warning(ORDER, USER, 3)

    assert sent is True
    smtp = RecordingSMTP.instances[-1]
    assert (smtp.host, smtp.port) == ("smtp.test", 2525)
    assert smtp.started_tls is True
    assert smtp.logged_in == ("no-reply@iptv.test", "pw")
    message = smtp.messages[0]
    assert message["To"] == "ana@example.com"
    assert message["Subject"] == "Seu acesso IPTV expira em 3 dias"
    html = message.get_body(preferencelist=("html",)).get_content()
    assert "01/03/2026" in html


@pytest.mark.asyncio
async def test_send_failure_is_swallowed():
    service = make_service(factory=RefusingSMTP)

    assert await service.send_welcome(USER) is False


@pytest.mark.asyncio
async def test_send_without_configuration_is_skipped():
    RecordingSMTP.instances = []
    service = make_service(host="", username="")

    assert await service.send_credentials(ORDER, USER, "login: ana") is False
    assert RecordingSMTP.instances == []


@pytest.mark.asyncio
async def test_send_without_recipient_is_skipped():
    service = make_service()

    assert await service.send_admin_payment_alert("", ORDER, USER) is False
