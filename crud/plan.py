"""
PlanRepository for the planos table
"""

from typing import Any, Dict, List, Optional

from services.supabase_client import SupabaseClient

PLAN_FIELDS = ("nome", "descricao", "preco", "duracao_dias", "recursos", "ativo")


class PlanRepository:
    """Repository class for plan catalog rows."""

    def __init__(self, db: SupabaseClient):
        self.db = db

    async def list_active(self) -> List[Dict[str, Any]]:
        """Active plans, cheapest first."""
        return await self.db.select("planos", {"ativo": True}, order="preco", ascending=True)

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self.db.select("planos", order="created_at", ascending=False)

    async def get_plan(self, plan_id: Any) -> Optional[Dict[str, Any]]:
        return await self.db.select_one("planos", {"id": plan_id})

    async def get_active_plan(self, plan_id: Any) -> Optional[Dict[str, Any]]:
        return await self.db.select_one("planos", {"id": plan_id, "ativo": True})

    async def get_plans_by_ids(self, plan_ids: List[Any]) -> List[Dict[str, Any]]:
        if not plan_ids:
            return []
        return await self.db.select("planos", {"id": list(plan_ids)})

    async def create_plan(self, plan_data: dict) -> Dict[str, Any]:
        row = {key: plan_data.get(key) for key in PLAN_FIELDS}
        row["ativo"] = plan_data.get("ativo") is not False
        return await self.db.insert("planos", row)

    async def update_plan(self, plan_id: Any, updates: dict) -> Optional[Dict[str, Any]]:
        values = {key: value for key, value in updates.items() if key in PLAN_FIELDS}
        return await self.db.update("planos", values, {"id": plan_id})
