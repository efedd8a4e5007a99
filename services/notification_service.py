"""
Notification Service - in-app notification rows and transactional email fan-out
"""

import logging
from typing import Any, Dict, List, Optional

from crud.configuration import ConfigurationRepository, ADMIN_NOTIFICATION_EMAIL
from crud.notification import NotificationRepository
from crud.user import UserRepository
from models.enums import TrialStatus
from services.email_service import EmailService
from services.supabase_client import SupabaseClient, SupabaseError

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Writes notificacoes rows and sends the matching emails.
    Email delivery is best effort; row inserts propagate BaaS errors.
    """

    def __init__(self, db: SupabaseClient, email_service: EmailService):
        self.notifications = NotificationRepository(db)
        self.users = UserRepository(db)
        self.configuration = ConfigurationRepository(db)
        self.email = email_service

    async def notify_payment_confirmed(self, order: Dict[str, Any], customer: Optional[Dict[str, Any]]) -> None:
        """
        Fan out a confirmed payment: one row for an admin, one for the
        owner, the customer confirmation email and the admin alert email.

        Args:
            order: Order row enriched with plano_nome / plano_duracao_dias
            customer: Owner profile row (may be None if the row is missing)
        """
        admin_id = await self.users.get_any_admin_id()
        if admin_id:
            await self.notifications.create_notification(
                admin_id,
                tipo="pagamento_confirmado",
                titulo="Novo Pagamento Confirmado",
                mensagem=f"Pedido #{order['id']} - {order.get('plano_nome')} - R$ {order.get('valor')}",
                pedido_id=order["id"],
            )
        else:
            logger.warning(f"No admin user found to notify about order {order['id']}")

        await self.notifications.create_notification(
            order["usuario_id"],
            tipo="pagamento_aprovado",
            titulo="Pagamento Aprovado",
            mensagem="Seu pagamento foi confirmado! Aguarde o envio das credenciais.",
            pedido_id=order["id"],
        )

        if customer:
            await self.email.send_payment_confirmation(order, customer)
            await self._send_admin_alert(order, customer)

    async def _send_admin_alert(self, order: Dict[str, Any], customer: Dict[str, Any]) -> bool:
        try:
            admin_email = await self.configuration.get_value(ADMIN_NOTIFICATION_EMAIL)
        except SupabaseError as e:
            logger.error(f"Could not read admin notification email: {e}")
            return False
        if not admin_email:
            return False
        return await self.email.send_admin_payment_alert(admin_email, order, customer)

    async def notify_trial_decision(
        self,
        user_id: str,
        status: TrialStatus,
        observacoes_admin: Optional[str] = None,
    ) -> Dict[str, Any]:
        if status == TrialStatus.APPROVED:
            return await self.notifications.create_notification(
                user_id,
                tipo="sucesso",
                titulo="Teste Grátis Aprovado!",
                mensagem="Sua solicitação de teste grátis foi aprovada. Aproveite!",
            )
        return await self.notifications.create_notification(
            user_id,
            tipo="info",
            titulo="Solicitação de Teste Rejeitada",
            mensagem=f"Sua solicitação foi rejeitada. {observacoes_admin or ''}".strip(),
        )

    async def notify_access_released(self, order: Dict[str, Any]) -> Dict[str, Any]:
        return await self.notifications.create_notification(
            order["usuario_id"],
            tipo="acesso_liberado",
            titulo="Acesso Liberado",
            mensagem="Suas credenciais IPTV foram enviadas para o seu e-mail.",
            pedido_id=order["id"],
        )

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.notifications.list_user_notifications(user_id)

    async def mark_read(self, notification_id: Any, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.notifications.mark_read(notification_id, user_id)
