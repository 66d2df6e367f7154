import logging
import re
import secrets
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from carhire.core.dates import ranges_overlap
from carhire.core.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from carhire.db import repository
from carhire.db.models import PAID_IN_FULL, Booking, BookingStatus, Vehicle, normalize_status
from carhire.schemas.bookings import BookingCreate
from carhire.services.audit import log_action
from carhire.services.availability import vehicle_availability
from carhire.services.locations import resolve_location

logger = logging.getLogger(__name__)


"""
BOOKING WRITES => CREATE, CONFIRM, STATUS, PAYMENT, DELETE

Non-overlap of confirmed bookings is enforced here, at write time.
Reads and writes are not atomic: two admins confirming overlapping
pending bookings at the same moment can both pass the check.
"""


DATES_UNAVAILABLE = "Those dates just became unavailable. Please pick different dates."
CONFIRM_CONFLICT = "Cannot confirm: dates overlap an existing confirmed booking."
BOOKING_NOT_FOUND = "Booking not found."

_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


#Upper case, letters / digits / space / dash only ("qf-391" -> "QF-391")
def normalize_flight_number(value: str | None) -> str | None:
    cleaned = re.sub(r"[^A-Z0-9\- ]", "", (value or "").upper().strip())
    return cleaned or None


def generate_booking_code(db: Session, length: int = 6) -> str:
    while True:
        code = "BK-" + "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))
        if not repository.find_booking(db, code=code):
            return code


#Commit or roll back; constraint failures are a 400, anything else a 500
def _commit(db: Session, failure: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValidationError(str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s %s", failure, e)
        raise UpstreamError(failure) from e


#Unsaved booking with canonical location names and fees folded into the total
def _build_booking(db: Session, payload: BookingCreate, status: BookingStatus) -> Booking:
    vehicle = db.get(Vehicle, payload.vehicle_id)
    if not vehicle:
        raise ValidationError("Vehicle not found.")

    pickup = resolve_location(db, payload.pickup_location, "Pickup")
    dropoff = resolve_location(db, payload.dropoff_location, "Drop-off")

    pickup_fee = pickup.fee_fjd or 0
    dropoff_fee = dropoff.fee_fjd or 0

    return Booking(
        vehicle_id=vehicle.id,
        code=generate_booking_code(db),
        start_date=payload.start_date,
        end_date=payload.end_date,
        pickup_time=payload.pickup_time,
        dropoff_time=payload.dropoff_time,
        pickup_location=pickup.name,
        dropoff_location=dropoff.name,
        customer_name=payload.customer_name.strip(),
        contact_number=payload.contact_number.strip(),
        email=str(payload.email),
        flight_number=normalize_flight_number(payload.flight_number),
        total_price=(payload.total_price or 0) + pickup_fee + dropoff_fee,
        pickup_fee_fjd=pickup_fee,
        dropoff_fee_fjd=dropoff_fee,
        status=status.value,
    )


#Public booking flow: final overlap check, then insert as pending
def create_booking(db: Session, payload: BookingCreate, now: datetime | None = None) -> Booking:
    booking = _build_booking(db, payload, BookingStatus.PENDING)

    blocked = vehicle_availability(db, booking.vehicle_id, include_pending=True, now=now)
    if any(ranges_overlap(payload.start_date, payload.end_date, r) for r in blocked):
        raise ConflictError(DATES_UNAVAILABLE)

    if now is not None:
        booking.created_at = now

    db.add(booking)
    _commit(db, "Failed to create booking.")
    db.refresh(booking)

    log_action(
        db=db,
        actor_type="system",
        action="booking.created",
        details=f"booking_id={booking.id},code={booking.code},vehicle_id={booking.vehicle_id}",
    )
    logger.info("Booking %s created for vehicle %s", booking.code, booking.vehicle_id)

    return booking


#Admin phone / walk-in booking, written straight in as confirmed
def create_confirmed_booking(db: Session, payload: BookingCreate) -> Booking:
    booking = _build_booking(db, payload, BookingStatus.CONFIRMED)

    confirmed = vehicle_availability(db, booking.vehicle_id, include_pending=False)
    if any(ranges_overlap(payload.start_date, payload.end_date, r) for r in confirmed):
        raise ConflictError(CONFIRM_CONFLICT)

    db.add(booking)
    _commit(db, "Failed to create booking.")
    db.refresh(booking)

    log_action(
        db=db,
        actor_type="admin",
        action="booking.created_confirmed",
        details=f"booking_id={booking.id},code={booking.code},vehicle_id={booking.vehicle_id}",
    )

    return booking


def confirm_booking(
    db: Session,
    booking_id: str | None = None,
    code: str | None = None,
) -> tuple[Booking, str | None]:
    """
    Move a booking to confirmed after re-checking that no other confirmed
    booking on the same vehicle shares a day with it. Confirming a booking
    that is already confirmed is a no-op and returns a message.
    """
    if not booking_id and not code:
        raise ValidationError("Provide booking 'id' or 'code'.")

    booking = repository.find_booking(db, booking_id=booking_id, code=code)
    if not booking:
        raise NotFoundError(BOOKING_NOT_FOUND)

    if normalize_status(booking.status) == BookingStatus.CONFIRMED:
        return booking, "Already confirmed."

    if repository.overlapping_confirmed(db, booking):
        raise ConflictError(CONFIRM_CONFLICT)

    booking.status = BookingStatus.CONFIRMED.value
    _commit(db, "Failed to confirm booking.")
    db.refresh(booking)

    log_action(
        db=db,
        actor_type="admin",
        action="booking.confirmed",
        details=f"booking_id={booking.id}",
    )
    logger.info("Booking %s confirmed", booking.code or booking.id)

    return booking, None


#Admin cancel / decline / complete
def set_booking_status(db: Session, booking_id: str, status: str) -> Booking:
    target = normalize_status(status)
    if target is None or target in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
        raise ValidationError(f"Unsupported status: {status}")

    booking = repository.find_booking(db, booking_id=booking_id)
    if not booking:
        raise NotFoundError(BOOKING_NOT_FOUND)

    booking.status = target.value
    _commit(db, "Failed to update booking status.")
    db.refresh(booking)

    log_action(
        db=db,
        actor_type="admin",
        action=f"booking.{target.value}",
        details=f"booking_id={booking.id}",
    )

    return booking


#Payment is tracked apart from the lifecycle status
def mark_paid_full(db: Session, booking_id: str) -> Booking:
    booking = repository.find_booking(db, booking_id=booking_id)
    if not booking:
        raise NotFoundError(BOOKING_NOT_FOUND)

    booking.payment_status = PAID_IN_FULL
    booking.amount_paid = booking.total_price
    _commit(db, "Failed to mark booking as paid.")
    db.refresh(booking)

    log_action(
        db=db,
        actor_type="admin",
        action="booking.paid_in_full",
        details=f"booking_id={booking.id},amount={booking.amount_paid}",
    )

    return booking


def delete_booking(db: Session, booking_id: str) -> None:
    booking = repository.find_booking(db, booking_id=booking_id)
    if not booking:
        raise NotFoundError(BOOKING_NOT_FOUND)

    db.delete(booking)
    _commit(db, "Failed to delete booking.")

    log_action(
        db=db,
        actor_type="admin",
        action="booking.deleted",
        details=f"booking_id={booking_id}",
    )

#Dashboard list, newest first, with the vehicle title and plate
def list_bookings(db: Session) -> list[dict]:
    rows = repository.all_bookings(db)
    vehicles = repository.vehicles_by_id(db, (b.vehicle_id for b in rows))

    out = []
    for b in rows:
        vehicle = vehicles.get(b.vehicle_id)
        out.append(
            {
                **{c.name: getattr(b, c.name) for c in Booking.__table__.columns},
                "vehicle_title": vehicle.title if vehicle else None,
                "registration_number": vehicle.registration_number if vehicle else None,
            }
        )
    return out
