import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carhire.core.config import settings
from carhire.core.dates import DateRange, start_of_day
from carhire.core.errors import ValidationError
from carhire.db import repository
from carhire.db.models import Booking, BookingStatus, normalize_status

logger = logging.getLogger(__name__)


"""
AVAILABILITY => BLOCKED DATE RANGES PER VEHICLE

Confirmed bookings always block. Pending bookings block only while they
are younger than the hold window, so an abandoned checkout frees its dates.
Ranges are returned as stored: overlapping or adjacent entries are not merged.
"""


#Accepts 1 / "1" / True / "true"
def parse_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true")


#Negative, missing or non-numeric values fall back to the configured default
def normalize_hold_hours(value) -> float:
    if value is None or value == "" or isinstance(value, bool):
        return settings.PENDING_HOLD_HOURS
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return settings.PENDING_HOLD_HOURS
    if hours < 0 or hours != hours:
        return settings.PENDING_HOLD_HOURS
    return hours


#String keys, de-duplicated in first-seen order, capped for request size
def normalize_vehicle_ids(raw: Iterable) -> list[str]:
    ids: list[str] = []
    seen = set()
    for value in raw or []:
        key = str(value).strip()
        if not key or key in seen:
            continue
        seen.add(key)
        ids.append(key)

    if not ids:
        raise ValidationError("vehicleIds is required and must be a non-empty array")
    if len(ids) > settings.BULK_MAX_IDS:
        raise ValidationError(f"Too many vehicleIds (max {settings.BULK_MAX_IDS}).")
    return ids


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _pending_cutoff(now: datetime, pending_hold_hours: float) -> datetime:
    return _as_utc(now) - timedelta(hours=pending_hold_hours)


def is_blocking(
    booking: Booking,
    *,
    today: date,
    cutoff: datetime | None,
) -> bool:
    if booking.end_date < today:
        return False

    status = normalize_status(booking.status)
    if status == BookingStatus.CONFIRMED:
        return True
    if status == BookingStatus.PENDING and cutoff is not None:
        created = _as_utc(booking.created_at)
        return created is not None and created >= cutoff
    return False


def compute_availability(
    bookings: Iterable[Booking],
    *,
    today: date,
    now: datetime,
    include_pending: bool = False,
    pending_hold_hours: float | None = None,
) -> list[DateRange]:
    """
    Pure projection of booking rows onto blocked ranges.

    Confirmed rows ending today or later always block; pending rows block
    when include_pending is set and they were created inside the hold
    window. The result is sorted by start date (stable) and not merged.
    """
    hours = normalize_hold_hours(pending_hold_hours)
    cutoff = _pending_cutoff(now, hours) if include_pending else None

    ranges = [
        DateRange(b.start_date, b.end_date)
        for b in bookings
        if is_blocking(b, today=today, cutoff=cutoff)
    ]
    ranges.sort(key=lambda r: r.start)
    return ranges


def _load_rows(
    db: Session,
    vehicle_ids: list[str],
    today: date,
    now: datetime,
    include_pending: bool,
    hours: float,
) -> list[Booking]:
    rows = repository.confirmed_bookings(db, vehicle_ids, today)
    if include_pending:
        rows = rows + repository.recent_pending_bookings(
            db, vehicle_ids, today, _pending_cutoff(now, hours)
        )
    return rows


#Blocked ranges for one vehicle; repository errors propagate
def vehicle_availability(
    db: Session,
    vehicle_id: str,
    include_pending: bool = False,
    pending_hold_hours: float | None = None,
    now: datetime | None = None,
) -> list[DateRange]:
    now = now or datetime.now(timezone.utc)
    today = start_of_day(now)
    hours = normalize_hold_hours(pending_hold_hours)

    rows = _load_rows(db, [str(vehicle_id)], today, now, include_pending, hours)
    return compute_availability(
        rows,
        today=today,
        now=now,
        include_pending=include_pending,
        pending_hold_hours=hours,
    )


def bulk_availability(
    db: Session,
    vehicle_ids: Iterable,
    include_pending: bool = False,
    pending_hold_hours: float | None = None,
    now: datetime | None = None,
) -> dict[str, list[DateRange]]:
    """
    Blocked ranges for many vehicles in at most two queries (confirmed,
    then pending), however many ids are requested. Every requested id
    gets an entry, empty when the vehicle has no blocking bookings.
    """
    ids = normalize_vehicle_ids(vehicle_ids)
    now = now or datetime.now(timezone.utc)
    today = start_of_day(now)
    hours = normalize_hold_hours(pending_hold_hours)

    grouped: dict[str, list[Booking]] = {vid: [] for vid in ids}
    for row in _load_rows(db, ids, today, now, include_pending, hours):
        grouped.setdefault(str(row.vehicle_id), []).append(row)

    return {
        vid: compute_availability(
            rows,
            today=today,
            now=now,
            include_pending=include_pending,
            pending_hold_hours=hours,
        )
        for vid, rows in grouped.items()
    }


#Listing pages must render even when availability cannot be loaded.
#Fleets larger than one bulk request are fetched in chunks and merged.
def safe_bulk_availability(
    db: Session,
    vehicle_ids: Iterable,
    include_pending: bool = True,
    pending_hold_hours: float | None = None,
    now: datetime | None = None,
) -> dict[str, list[DateRange]]:
    ids = list(dict.fromkeys(str(v).strip() for v in vehicle_ids if str(v).strip()))
    if not ids:
        return {}

    size = max(1, settings.BULK_MAX_IDS)
    merged: dict[str, list[DateRange]] = {}
    try:
        for i in range(0, len(ids), size):
            merged.update(
                bulk_availability(db, ids[i:i + size], include_pending, pending_hold_hours, now)
            )
    except SQLAlchemyError as e:
        logger.warning("Availability unavailable for %d vehicles: %s", len(ids), e)
        db.rollback()
        return {vid: [] for vid in ids}
    return merged
