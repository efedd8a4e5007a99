"""
NotificationRepository for the notificacoes table
"""

from typing import Any, Dict, List, Optional

from services.supabase_client import SupabaseClient

DEFAULT_LIMIT = 50


class NotificationRepository:
    def __init__(self, db: SupabaseClient):
        self.db = db

    async def create_notification(
        self,
        user_id: str,
        tipo: str,
        titulo: str,
        mensagem: str,
        pedido_id: Optional[Any] = None,
    ) -> Dict[str, Any]:
        row = {
            "usuario_id": user_id,
            "tipo": tipo,
            "titulo": titulo,
            "mensagem": mensagem,
            "lida": False,
        }
        if pedido_id is not None:
            row["pedido_id"] = pedido_id
        return await self.db.insert("notificacoes", row)

    async def list_user_notifications(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        return await self.db.select(
            "notificacoes", {"usuario_id": user_id}, order="created_at", ascending=False, limit=limit
        )

    async def mark_read(self, notification_id: Any, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.update(
            "notificacoes", {"lida": True}, {"id": notification_id, "usuario_id": user_id}
        )
