"""
Per-request service wiring.

Every service gets its own BaaS client, gateway adapter and email sender
from the FastAPI dependencies, so tests can swap any of them through
``app.dependency_overrides``.
"""

from fastapi import Depends

from database import get_db
from services.billing_service import BillingService
from services.email_service import EmailService, get_email_service
from services.notification_service import NotificationService
from services.order_service import OrderService
from services.payment_gateway import MercadoPagoGateway, get_payment_gateway
from services.statistics_service import StatisticsService
from services.supabase_client import SupabaseClient
from services.trial_service import TrialService


def get_notification_service(
    db: SupabaseClient = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> NotificationService:
    return NotificationService(db, email_service)


def get_billing_service(
    db: SupabaseClient = Depends(get_db),
    gateway: MercadoPagoGateway = Depends(get_payment_gateway),
    notifications: NotificationService = Depends(get_notification_service),
) -> BillingService:
    return BillingService(db, gateway, notifications)


def get_order_service(
    db: SupabaseClient = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
    email_service: EmailService = Depends(get_email_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(db, billing, email_service, notifications)


def get_trial_service(
    db: SupabaseClient = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
) -> TrialService:
    return TrialService(db, notifications)


def get_statistics_service(db: SupabaseClient = Depends(get_db)) -> StatisticsService:
    return StatisticsService(db)
