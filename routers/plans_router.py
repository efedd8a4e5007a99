"""
Plans Router - public plan catalog
"""

from fastapi import APIRouter, Depends

from crud.plan import PlanRepository
from database import get_db
from services.supabase_client import SupabaseClient

plans_router = APIRouter(prefix="/api/planos", tags=["planos"])


@plans_router.get("")
async def list_plans(db: SupabaseClient = Depends(get_db)):
    """Active plans, cheapest first. No authentication required."""
    return await PlanRepository(db).list_active()
