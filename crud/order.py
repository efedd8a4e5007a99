"""
OrderRepository for the pedidos table
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from services.supabase_client import SupabaseClient
from models.enums import AccessStatus, PaymentStatus
from utils.shared_utils import utcnow, to_iso


class OrderRepository:
    """
    Repository class for order rows.
    Customer-facing reads are always scoped by ``usuario_id``.
    """

    def __init__(self, db: SupabaseClient):
        self.db = db

    async def create_order(self, user_id: str, plan: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new order for ``plan``; the price is copied from the plan.

        Returns:
            Created order row
        """
        row = {
            "usuario_id": user_id,
            "plano_id": plan["id"],
            "valor": plan["preco"],
            "status_pagamento": PaymentStatus.AWAITING_PAYMENT.value,
            "status_acesso": AccessStatus.INACTIVE.value,
        }
        return await self.db.insert("pedidos", row)

    async def get_order(self, order_id: Any) -> Optional[Dict[str, Any]]:
        return await self.db.select_one("pedidos", {"id": order_id})

    async def get_user_order(self, order_id: Any, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.select_one("pedidos", {"id": order_id, "usuario_id": user_id})

    async def get_user_order_by_payment(self, payment_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.select_one("pedidos", {"mp_payment_id": payment_id, "usuario_id": user_id})

    async def list_user_orders(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.db.select("pedidos", {"usuario_id": user_id}, order="created_at", ascending=False)

    async def list_orders(
        self,
        status_pagamento: Optional[str] = None,
        status_acesso: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        filters = {}
        if status_pagamento:
            filters["status_pagamento"] = status_pagamento
        if status_acesso:
            filters["status_acesso"] = status_acesso
        return await self.db.select("pedidos", filters, order="created_at", ascending=False)

    async def list_expiring(self, start: datetime, cutoff: datetime) -> List[Dict[str, Any]]:
        """Active-access orders whose expiration falls within [start, cutoff]."""
        return await self.db.select(
            "pedidos",
            {
                "status_acesso": AccessStatus.ACTIVE.value,
                "data_expiracao__gte": to_iso(start),
                "data_expiracao__lte": to_iso(cutoff),
            },
            order="data_expiracao",
        )

    async def count_orders(self, status_pagamento: Optional[str] = None) -> int:
        return await self.db.count("pedidos", {"status_pagamento": status_pagamento} if status_pagamento else None)

    async def list_paid_amounts(self) -> List[Dict[str, Any]]:
        return await self.db.select("pedidos", {"status_pagamento": PaymentStatus.PAID.value}, columns="valor")

    async def update_order(self, order_id: Any, updates: dict, touch: bool = True) -> Optional[Dict[str, Any]]:
        values = dict(updates)
        if touch:
            values["updated_at"] = to_iso(utcnow())
        return await self.db.update("pedidos", values, {"id": order_id})


def with_plan_details(order: Dict[str, Any], plan: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of ``order`` carrying the plan fields used by emails and the gateway."""
    enriched = dict(order)
    if plan:
        enriched["plano_nome"] = plan.get("nome")
        enriched["plano_descricao"] = plan.get("descricao")
        enriched["plano_duracao_dias"] = plan.get("duracao_dias")
    return enriched
