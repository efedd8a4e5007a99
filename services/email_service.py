"""
Email Service - transactional HTML email over SMTP

Templates live in templates/emails and are rendered with Jinja2. Sending is
best effort: every failure is logged and reported as ``False``, never raised.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import settings
from utils.shared_utils import parse_datetime

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"


def format_brl(value: Any) -> str:
    """29.9 -> '29,90'"""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{amount:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def format_date_br(value: Any) -> str:
    parsed = parse_datetime(value)
    return parsed.strftime("%d/%m/%Y") if parsed else ""


def build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
    )
    env.filters["brl"] = format_brl
    env.filters["date_br"] = format_date_br
    return env


class EmailService:
    """Renders and sends the platform's transactional emails."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        from_name: Optional[str] = None,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username or settings.smtp_user
        self.password = password or settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.from_name = from_name or settings.email_from_name
        self.smtp_factory = smtp_factory
        self.env = build_environment()

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username)

    def render(self, template_name: str, **context: Any) -> str:
        context.setdefault("brand", self.from_name)
        context.setdefault("frontend_url", settings.frontend_url.rstrip("/"))
        return self.env.get_template(template_name).render(**context)

    def _deliver(self, message: EmailMessage) -> None:
        with self.smtp_factory(self.host, self.port, timeout=settings.http_timeout_seconds) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, template_name: str, **context: Any) -> bool:
        """
        Render ``template_name`` and send it to ``to``.

        Returns:
            True if the relay accepted the message, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"SMTP is not configured. Skipping email '{subject}' to {to}.")
            return False
        if not to:
            logger.warning(f"No recipient for email '{subject}'. Skipping.")
            return False

        try:
            message = EmailMessage()
            message["From"] = formataddr((self.from_name, self.username))
            message["To"] = to
            message["Subject"] = subject
            message.set_content("Este e-mail requer um cliente com suporte a HTML.")
            message.add_alternative(self.render(template_name, **context), subtype="html")
            await asyncio.to_thread(self._deliver, message)
        except Exception as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {e}", exc_info=True)
            return False

        logger.info(f"Email '{subject}' sent to {to}")
        return True

    async def send_welcome(self, user: Dict[str, Any]) -> bool:
        return await self.send(
            user.get("email"), f"Bem-vindo à {self.from_name}!", "welcome.html", user=user
        )

    async def send_payment_confirmation(self, order: Dict[str, Any], user: Dict[str, Any]) -> bool:
        return await self.send(
            user.get("email"),
            f"Pagamento Confirmado - {self.from_name}",
            "payment_confirmation.html",
            order=order,
            user=user,
        )

    async def send_credentials(self, order: Dict[str, Any], user: Dict[str, Any], credentials: str) -> bool:
        return await self.send(
            user.get("email"),
            "Suas Credenciais IPTV - Acesso Liberado",
            "credentials.html",
            order=order,
            user=user,
            credentials=credentials,
            header_gradient="linear-gradient(135deg, #10b981 0%, #059669 100%)",
        )

    async def send_expiration_warning(self, order: Dict[str, Any], user: Dict[str, Any], days_left: int) -> bool:
        return await self.send(
            user.get("email"),
            f"Seu acesso IPTV expira em {days_left} dias",
            "expiration_warning.html",
            order=order,
            user=user,
            days_left=days_left,
            header_gradient="linear-gradient(135deg, #f59e0b 0%, #d97706 100%)",
        )

    async def send_admin_payment_alert(self, admin_email: str, order: Dict[str, Any], user: Dict[str, Any]) -> bool:
        return await self.send(
            admin_email,
            "💰 Novo Pagamento Confirmado",
            "admin_payment_alert.html",
            order=order,
            user=user,
        )


def get_email_service() -> EmailService:
    """Dependency: an email sender built from settings for the current request."""
    return EmailService()
