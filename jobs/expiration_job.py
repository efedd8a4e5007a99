"""
Expiration warning job

Emails customers whose IPTV access expires within the configured warning
window (``configuracoes.dias_aviso_expiracao``, falling back to
EXPIRATION_WARNING_DAYS). Runs as a periodic asyncio task inside the API
process when EXPIRATION_JOB_ENABLED is true, or once from the command line:

    python -m jobs.expiration_job
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from config import settings
from crud.configuration import ConfigurationRepository, EXPIRATION_WARNING_DAYS
from crud.order import OrderRepository, with_plan_details
from crud.plan import PlanRepository
from crud.user import UserRepository
from database import create_client
from services.email_service import EmailService
from services.supabase_client import SupabaseClient
from utils.shared_utils import index_by_id, parse_datetime, unique_values, utcnow

logger = logging.getLogger(__name__)


class ExpirationWarningJob:
    def __init__(self, db: SupabaseClient, email_service: EmailService):
        self.orders = OrderRepository(db)
        self.plans = PlanRepository(db)
        self.users = UserRepository(db)
        self.configuration = ConfigurationRepository(db)
        self.email = email_service

    async def warning_days(self) -> int:
        return await self.configuration.get_int(EXPIRATION_WARNING_DAYS, settings.expiration_warning_days)

    async def run_once(self, now: Optional[datetime] = None) -> int:
        """
        Send one warning per active order expiring in ``[now, now + N days]``.

        Returns:
            Number of warning emails the relay accepted
        """
        now = now or utcnow()
        days = await self.warning_days()
        cutoff = now + timedelta(days=days)

        orders = await self.orders.list_expiring(now, cutoff)
        if not orders:
            logger.info(f"No orders expiring before {cutoff.isoformat()}")
            return 0

        users = index_by_id(await self.users.get_users_by_ids(unique_values(orders, "usuario_id")))
        plans = index_by_id(await self.plans.get_plans_by_ids(unique_values(orders, "plano_id")))

        sent = 0
        for order in orders:
            customer = users.get(order.get("usuario_id"))
            expires_at = parse_datetime(order.get("data_expiracao"))
            if not customer or expires_at is None:
                logger.warning(f"Skipping expiration warning for order {order.get('id')}")
                continue

            days_left = max(0, math.ceil((expires_at - now).total_seconds() / 86400))
            enriched = with_plan_details(order, plans.get(order.get("plano_id")))
            if await self.email.send_expiration_warning(enriched, customer, days_left):
                sent += 1

        logger.info(f"Expiration warnings sent: {sent}/{len(orders)} (window {days} days)")
        return sent


async def run_expiration_check() -> int:
    """One pass with a fresh BaaS client and email sender built from settings."""
    async with create_client() as db:
        return await ExpirationWarningJob(db, EmailService()).run_once()


async def run_periodically(interval_hours: Optional[float] = None) -> None:
    """Loop forever; a failed pass is logged and retried at the next interval."""
    interval = (interval_hours or settings.expiration_job_interval_hours) * 3600
    while True:
        try:
            await run_expiration_check()
        except Exception as e:
            logger.error(f"Expiration check failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    asyncio.run(run_expiration_check())
