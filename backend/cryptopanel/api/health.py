from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config.settings import Settings
from .dependencies import get_settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(settings: Settings = Depends(get_settings)):
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return JSONResponse(
        {
            "status": "ok",
            "version": settings.APP_VERSION,
            "time": now,
            "env": settings.RUNTIME_ENV,
        },
        status_code=200,
        headers={"Cache-Control": "no-cache"},
    )
