import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from carhire.core.config import settings
from carhire.core.dates import to_zone
from carhire.db.session import get_db
from carhire.services.digest import in_send_window, run_digest
from carhire.services.whatsapp import digits

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/scheduler",
    tags=["Scheduler"],
)


"""
SCHEDULER ROUTES => DAILY DIGEST

POST is hit hourly by cron and only sends inside the 15:00-15:14 window
(business time) unless ?force=1. GET previews and, with ?dryRun=1&to=...,
sends to a single number instead of the configured recipients.
Errors come back as JSON, the cron never sees an exception.
"""


def _error(route: str, e: Exception) -> JSONResponse:
    logger.exception("[digest-tomorrow][%s] error", route)
    return JSONResponse({"ok": False, "error": str(e)}, status_code=500)


@router.get("/digest-tomorrow")
def preview_digest(
    dryRun: Optional[str] = Query(None),
    to: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        recipients = [digits(to)] if dryRun and to else None
        return run_digest(db, datetime.now(timezone.utc), recipients).as_dict()
    except Exception as e:
        return _error("GET", e)


@router.post("/digest-tomorrow")
def send_digest(
    force: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        now = datetime.now(timezone.utc)
        if not force and not in_send_window(now):
            local = to_zone(now, settings.BUSINESS_TIMEZONE)
            return {
                "ok": True,
                "skipped": True,
                "reason": "Outside send window",
                "now_local_iso": local.isoformat(),
                "hour_local": local.hour,
                "minute_local": local.minute,
                "tz": settings.BUSINESS_TIMEZONE,
            }

        return run_digest(db, now).as_dict()
    except Exception as e:
        return _error("POST", e)
