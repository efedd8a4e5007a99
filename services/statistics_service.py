"""
Statistics Service - aggregate counters for the admin dashboard
"""
import logging
from typing import Any, Dict

from crud.order import OrderRepository
from crud.trial_request import TrialRequestRepository
from crud.user import UserRepository
from models.enums import PaymentStatus, TrialStatus, UserStatus
from services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class StatisticsService:
    def __init__(self, db: SupabaseClient):
        self.users = UserRepository(db)
        self.orders = OrderRepository(db)
        self.trials = TrialRequestRepository(db)

    async def get_statistics(self) -> Dict[str, Any]:
        total_users = await self.users.count_users()
        active_users = await self.users.count_users(UserStatus.ACTIVE.value)
        total_orders = await self.orders.count_orders()
        paid_orders = await self.orders.count_orders(PaymentStatus.PAID.value)
        pending_trials = await self.trials.count_requests(TrialStatus.PENDING.value)

        paid_amounts = await self.orders.list_paid_amounts()
        total_revenue = sum(float(row.get("valor") or 0) for row in paid_amounts)

        return {
            "usuarios": {"total": total_users, "ativos": active_users},
            "pedidos": {"total": total_orders, "pagos": paid_orders},
            "solicitacoes_teste": {"pendentes": pending_trials},
            "receita": {"total": round(total_revenue, 2)},
        }
