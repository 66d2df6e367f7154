from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from carhire.api.deps import require_admin
from carhire.core.config import RATE_LIMITS
from carhire.core.rate_limit import make_key, rate_limit
from carhire.db.session import get_db
from carhire.schemas.bookings import (
    BookingConfirmOut,
    BookingConfirmRequest,
    BookingCreate,
    BookingCreated,
)
from carhire.services.bookings import confirm_booking, create_booking

router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"],
)


"""
BOOKING ROUTES => PUBLIC CREATE, ADMIN CONFIRM

1) BOOKINGS/CREATE => RATE LIMIT OF 5 REQUESTS / IP / 10 MINUTES, LOCATION FEES ADDED, STORED AS PENDING
2) BOOKINGS/CONFIRM => ADMIN ONLY, RE-CHECKS OVERLAP WITH CONFIRMED BOOKINGS
"""


#Public booking request from the checkout form
@router.post("/create", status_code=201, response_model=BookingCreated)
def create_public_booking(
    payload: BookingCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    max_requests, window = RATE_LIMITS["booking"]
    if not rate_limit(make_key(request, "booking"), max_requests, window):
        raise HTTPException(status_code=429, detail="Too many booking attempts")

    booking = create_booking(db, payload)

    return {
        "id": booking.id,
        "code": booking.code,
        "status": booking.status.upper(),
        "total_price": booking.total_price,
        "pickup_fee_fjd": booking.pickup_fee_fjd,
        "dropoff_fee_fjd": booking.dropoff_fee_fjd,
    }


#Confirm a pending booking by id or code
@router.post(
    "/confirm",
    response_model=BookingConfirmOut,
    dependencies=[Depends(require_admin)],
)
def confirm(
    payload: BookingConfirmRequest,
    db: Session = Depends(get_db),
):
    booking, message = confirm_booking(db, booking_id=payload.id, code=payload.code)
    return {"ok": True, "booking": booking, "message": message}
