"""
Sync routes - status and manual triggers for the background sync jobs.
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_sync_service
from app.scheduler.data_sync import DataSyncService

router = APIRouter()


@router.get("/status")
async def sync_status(sync_service: DataSyncService = Depends(get_sync_service)):
    return sync_service.get_sync_status()


@router.post("/stocks")
async def force_sync_stocks(sync_service: DataSyncService = Depends(get_sync_service)):
    """Run a stock sync now. `executed` is false when another sync holds the guard."""
    executed = await sync_service.force_sync_stocks()
    return {"executed": executed, "status": sync_service.get_sync_status()}


@router.post("/mutual-funds")
async def force_sync_mutual_funds(sync_service: DataSyncService = Depends(get_sync_service)):
    executed = await sync_service.force_sync_mutual_funds()
    return {"executed": executed, "status": sync_service.get_sync_status()}
