"""
ConfigurationRepository for runtime settings kept in the configuracoes table
"""

from typing import Optional

from services.supabase_client import SupabaseClient

ADMIN_NOTIFICATION_EMAIL = "notificacao_email_admin"
EXPIRATION_WARNING_DAYS = "dias_aviso_expiracao"


class ConfigurationRepository:
    def __init__(self, db: SupabaseClient):
        self.db = db

    async def get_value(self, key: str) -> Optional[str]:
        row = await self.db.select_one("configuracoes", {"chave": key}, columns="valor")
        if not row or not row.get("valor"):
            return None
        return str(row["valor"])

    async def get_int(self, key: str, default: int) -> int:
        value = await self.get_value(key)
        try:
            return int(value) if value is not None else default
        except ValueError:
            return default
