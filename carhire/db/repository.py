from datetime import date, datetime
from typing import Iterable

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from carhire.db.models import Booking, BookingStatus, ServiceLocation, Vehicle

"""
BOOKING REPOSITORY

The only module that builds booking queries. Status comparisons go
through lower() so legacy upper-case rows match their canonical value.
"""


def _status_in(*statuses: BookingStatus):
    return func.lower(Booking.status).in_([s.value for s in statuses])


#Confirmed bookings still relevant on or after today, for many vehicles
def confirmed_bookings(db: Session, vehicle_ids: list[str], today: date) -> list[Booking]:
    if not vehicle_ids:
        return []
    return (
        db.query(Booking)
        .filter(
            Booking.vehicle_id.in_(vehicle_ids),
            _status_in(BookingStatus.CONFIRMED),
            Booking.end_date >= today,
        )
        .order_by(Booking.vehicle_id.asc(), Booking.start_date.asc())
        .all()
    )


#Pending bookings created inside the hold window, for many vehicles
def recent_pending_bookings(
    db: Session,
    vehicle_ids: list[str],
    today: date,
    cutoff: datetime,
) -> list[Booking]:
    if not vehicle_ids:
        return []
    return (
        db.query(Booking)
        .filter(
            Booking.vehicle_id.in_(vehicle_ids),
            _status_in(BookingStatus.PENDING),
            Booking.created_at >= cutoff,
            Booking.end_date >= today,
        )
        .order_by(Booking.vehicle_id.asc(), Booking.start_date.asc())
        .all()
    )


def find_booking(db: Session, booking_id: str | None = None, code: str | None = None) -> Booking | None:
    query = db.query(Booking)
    if booking_id:
        query = query.filter(Booking.id == booking_id)
    elif code:
        query = query.filter(Booking.code == code)
    else:
        return None
    return query.first()


#Any OTHER confirmed booking on the same vehicle sharing at least one day
def overlapping_confirmed(db: Session, booking: Booking) -> Booking | None:
    return (
        db.query(Booking)
        .filter(
            Booking.vehicle_id == booking.vehicle_id,
            _status_in(BookingStatus.CONFIRMED),
            Booking.start_date <= booking.end_date,
            Booking.end_date >= booking.start_date,
            Booking.id != booking.id,
        )
        .first()
    )


#Confirmed and completed bookings that start or end on any of the given days
def dispatch_bookings(db: Session, days: Iterable[date]) -> list[Booking]:
    days = list(days)
    return (
        db.query(Booking)
        .filter(
            or_(Booking.start_date.in_(days), Booking.end_date.in_(days)),
            _status_in(BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        )
        .all()
    )


def bookings_ending_on(db: Session, day: date) -> list[Booking]:
    return (
        db.query(Booking)
        .filter(
            Booking.end_date == day,
            _status_in(BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        )
        .all()
    )


def all_bookings(db: Session) -> list[Booking]:
    return db.query(Booking).order_by(Booking.created_at.desc()).all()


def vehicles_by_id(db: Session, vehicle_ids: Iterable[str]) -> dict[str, Vehicle]:
    ids = {v for v in vehicle_ids if v}
    if not ids:
        return {}
    rows = db.query(Vehicle).filter(Vehicle.id.in_(ids)).all()
    return {v.id: v for v in rows}


#Active service location by name, case-insensitive, surrounding spaces ignored
def active_location(db: Session, name: str | None) -> ServiceLocation | None:
    key = (name or "").strip().lower()
    if not key:
        return None
    return (
        db.query(ServiceLocation)
        .filter(
            func.lower(ServiceLocation.name) == key,
            ServiceLocation.is_active == True,  # noqa: E712
        )
        .first()
    )
