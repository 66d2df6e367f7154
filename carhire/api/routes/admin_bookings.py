from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from carhire.api.deps import require_admin
from carhire.db import repository
from carhire.db.session import get_db
from carhire.schemas.bookings import (
    BookingCreate,
    BookingDelete,
    BookingListItem,
    BookingMarkPaid,
    BookingOut,
    BookingPaidOut,
    BookingStatusUpdate,
)
from carhire.schemas.tasks import TasksOut
from carhire.services.bookings import (
    create_confirmed_booking,
    delete_booking,
    list_bookings,
    mark_paid_full,
    set_booking_status,
)
from carhire.services.tasks import build_tasks, resolve_task_day

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


"""
ADMIN ROUTES => BOOKING MANAGEMENT & DAILY TASKS
"""


#Every booking, newest first
@router.get("/bookings/list", response_model=List[BookingListItem])
def get_bookings(db: Session = Depends(get_db)):
    return list_bookings(db)


#Phone or walk-in booking, stored as confirmed
@router.post("/bookings/create", status_code=201, response_model=BookingOut)
def create_admin_booking(
    payload: BookingCreate,
    db: Session = Depends(get_db),
):
    return create_confirmed_booking(db, payload)


#Cancel / decline / complete a booking
@router.post("/bookings/status", response_model=BookingOut)
def update_booking_status(
    payload: BookingStatusUpdate,
    db: Session = Depends(get_db),
):
    return set_booking_status(db, payload.id, payload.status)


@router.post("/bookings/delete")
def remove_booking(
    payload: BookingDelete,
    db: Session = Depends(get_db),
):
    delete_booking(db, payload.id)
    return {"ok": True}


@router.post("/bookings/mark-paid-full", response_model=BookingPaidOut)
def mark_booking_paid(
    payload: BookingMarkPaid,
    db: Session = Depends(get_db),
):
    return {"ok": True, "booking": mark_paid_full(db, payload.id)}


#Deliver / pick up list for one day, auto-switching to tomorrow at 15:00 business time
@router.get("/tasks", response_model=TasksOut)
def get_tasks(
    day: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    target = resolve_task_day(day, datetime.now(timezone.utc))

    rows = repository.dispatch_bookings(db, [target])
    vehicles = repository.vehicles_by_id(db, (b.vehicle_id for b in rows))

    return {"date": target.isoformat(), "tasks": build_tasks(rows, target, vehicles)}
