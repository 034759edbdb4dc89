from fastapi import APIRouter, Depends

from app.api.deps import get_broadcast_service
from app.realtime.broadcast import RealtimeBroadcastService

router = APIRouter()


@router.get("/stats")
async def realtime_stats(service: RealtimeBroadcastService = Depends(get_broadcast_service)):
    return service.get_connection_stats()
