import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carhire.core.errors import ValidationError
from carhire.db.session import get_db
from carhire.schemas.availability import (
    AvailabilityOut,
    BulkAvailabilityOut,
    BulkAvailabilityRequest,
)
from carhire.services.availability import (
    bulk_availability,
    parse_flag,
    vehicle_availability,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/availability",
    tags=["Availability"],
)


"""
AVAILABILITY ROUTES => PUBLIC, READ ONLY

Advisory data for the booking calendar. The binding overlap check happens
when a booking is created or confirmed.
"""


def _bulk(db: Session, payload: BulkAvailabilityRequest):
    try:
        results = bulk_availability(
            db,
            payload.vehicleIds,
            include_pending=parse_flag(payload.includePending),
            pending_hold_hours=payload.pendingHours,
        )
    except ValidationError as e:
        return JSONResponse({"ok": False, "error": e.message}, status_code=400)
    except SQLAlchemyError as e:
        logger.warning("Bulk availability failed: %s", e)
        return JSONResponse({"ok": False, "error": "Error loading bookings"}, status_code=500)

    return {
        "ok": True,
        "results": {vid: [r.as_dict() for r in ranges] for vid, ranges in results.items()},
    }


#Blocked ranges for many vehicles in one call
@router.post("/bulk", response_model=BulkAvailabilityOut)
def post_bulk_availability(
    payload: BulkAvailabilityRequest,
    db: Session = Depends(get_db),
):
    return _bulk(db, payload)


#Convenience GET: /availability/bulk?ids=1,2,3&includePending=1&pendingHours=48
@router.get("/bulk", response_model=BulkAvailabilityOut)
def get_bulk_availability(
    ids: str = Query(""),
    includePending: str = Query("0"),
    pendingHours: Optional[float] = Query(None),
    db: Session = Depends(get_db),
):
    payload = BulkAvailabilityRequest(
        vehicleIds=[s.strip() for s in ids.split(",") if s.strip()],
        includePending=includePending,
        pendingHours=pendingHours,
    )
    return _bulk(db, payload)


#Blocked ranges for one vehicle
@router.get("/{vehicle_id}", response_model=AvailabilityOut)
def get_vehicle_availability(
    vehicle_id: str,
    includePending: str = Query("0"),
    pendingHours: Optional[float] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        ranges = vehicle_availability(
            db,
            vehicle_id,
            include_pending=parse_flag(includePending),
            pending_hold_hours=pendingHours,
        )
    except SQLAlchemyError as e:
        logger.warning("Availability for vehicle %s failed: %s", vehicle_id, e)
        return JSONResponse({"error": "Error loading bookings"}, status_code=500)

    return {"ranges": [r.as_dict() for r in ranges]}
