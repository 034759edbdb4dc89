from fastapi import APIRouter, Request
from sqlalchemy import text

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    db_status = "connected"
    try:
        store = request.app.state.store
        async with store.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    sync_service = getattr(request.app.state, "sync_service", None)
    scheduler_status = "disabled"
    if sync_service is not None:
        scheduler_status = "running" if sync_service.scheduler.running else "stopped"

    broadcast = getattr(request.app.state, "broadcast_service", None)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "services": {
            "api": "running",
            "database": db_status,
            "scheduler": scheduler_status,
            "realtime_clients": len(broadcast.clients) if broadcast else 0,
        },
    }
