from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from carhire.core.config import DEPOT_PLACEHOLDER, settings
from carhire.core.dates import add_days, minutes_between, parse_ymd, to_hm, to_zone
from carhire.core.errors import ValidationError
from carhire.db.models import Booking, BookingStatus, normalize_status


"""
DISPATCH => DAILY DELIVER / PICK UP TASKS

Derived fresh from booking rows for one calendar day in the business
timezone. A vehicle that is returned and handed out again on the same
day appears once, as a Deliver task carrying the turnaround buffer.
"""


DELIVER = "Deliver"
PICK_UP = "Pick up"

_TYPE_ORDER = {PICK_UP: 0, DELIVER: 1}

DAY_KEYS = {"today": 0, "tomorrow": 1, "day_after": 2}


@dataclass
class UnifiedTask:
    type: str
    time: str
    booking_id: str
    booking_code: str
    vehicle_id: Optional[str]
    vehicle_title: str
    plate: str
    customer_name: str
    customer_phone: Optional[str]
    customer_email: Optional[str]
    flight_number: Optional[str]
    from_location: str
    to_location: str
    buffer_minutes: Optional[int] = None


def pickup_hm(booking: Booking) -> str:
    return to_hm(booking.pickup_time) or settings.DEFAULT_PICKUP_TIME


def dropoff_hm(booking: Booking) -> str:
    return to_hm(booking.dropoff_time) or settings.DEFAULT_DROPOFF_TIME


def dispatchable(bookings: Iterable[Booking]) -> list[Booking]:
    keep = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
    return [b for b in bookings if normalize_status(b.status) in keep]


def group_by_vehicle(bookings: Iterable[Booking]) -> dict[str, list[Booking]]:
    grouped: dict[str, list[Booking]] = defaultdict(list)
    for b in bookings:
        grouped[b.vehicle_id or "_"].append(b)
    return grouped


def booking_code(booking: Booking) -> str:
    return booking.code or str(booking.id)[:8].upper()


def _vehicle_bits(vehicle_id: str | None, vehicles: Mapping) -> tuple[str, str]:
    vehicle = vehicles.get(vehicle_id) if vehicle_id else None
    if vehicle is None:
        return "Vehicle", ""
    return vehicle.title or "Vehicle", vehicle.registration_number or ""


def _task(kind: str, at: str, booking: Booking, vehicles: Mapping, **extra) -> UnifiedTask:
    title, plate = _vehicle_bits(booking.vehicle_id, vehicles)
    return UnifiedTask(
        type=kind,
        time=at,
        booking_id=str(booking.id),
        booking_code=booking_code(booking),
        vehicle_id=booking.vehicle_id,
        vehicle_title=title,
        plate=plate,
        customer_name=booking.customer_name or "",
        customer_phone=booking.contact_number or None,
        customer_email=booking.email or None,
        flight_number=booking.flight_number or None,
        **extra,
    )


def build_tasks(
    bookings: Iterable[Booking],
    day: date | str,
    vehicles: Mapping | None = None,
) -> list[UnifiedTask]:
    """
    Build the ordered Deliver / Pick up list for `day`.

    Each booking starting on the day gives a Deliver task. Its origin is
    the drop-off location of the same vehicle's booking ending that day
    (earliest drop-off time first), or the depot placeholder. When such a
    booking exists the turnaround buffer is reported, negative if the
    drop-off is later than the pickup. Bookings ending on the day only get
    their own Pick up task when the vehicle is not handed out again.
    Sorted by time, pickups before deliveries at equal times.
    """
    day = parse_ymd(day)
    vehicles = vehicles or {}
    rows = dispatchable(bookings)

    rows_start = [b for b in rows if b.start_date == day]
    rows_end = [b for b in rows if b.end_date == day]

    start_by_vehicle = group_by_vehicle(rows_start)
    end_by_vehicle = group_by_vehicle(rows_end)

    tasks: list[UnifiedTask] = []

    for s in rows_start:
        same_day_ends = sorted(
            end_by_vehicle.get(s.vehicle_id or "_", []),
            key=lambda b: to_hm(b.dropoff_time) or "",
        )
        prev_end = next((b for b in same_day_ends if b.id != s.id), None)
        start_at = pickup_hm(s)

        buffer = None
        origin = DEPOT_PLACEHOLDER
        if prev_end is not None:
            origin = prev_end.dropoff_location or DEPOT_PLACEHOLDER
            buffer = minutes_between(dropoff_hm(prev_end), start_at)

        tasks.append(
            _task(
                DELIVER,
                start_at,
                s,
                vehicles,
                from_location=origin,
                to_location=s.pickup_location or "",
                buffer_minutes=buffer,
            )
        )

    for e in rows_end:
        if start_by_vehicle.get(e.vehicle_id or "_"):
            continue

        tasks.append(
            _task(
                PICK_UP,
                dropoff_hm(e),
                e,
                vehicles,
                from_location=e.dropoff_location or "",
                to_location=DEPOT_PLACEHOLDER,
            )
        )

    tasks.sort(key=lambda t: (t.time, _TYPE_ORDER[t.type]))
    return tasks


#Admin Tasks view shows today until the switch hour, then tomorrow
def default_task_day(now: datetime) -> date:
    local = to_zone(now, settings.BUSINESS_TIMEZONE)
    if local.hour >= settings.TASKS_SWITCH_HOUR:
        return add_days(local.date(), 1)
    return local.date()


#"today" / "tomorrow" / "day_after" / "YYYY-MM-DD" / None (auto)
def resolve_task_day(key: str | None, now: datetime) -> date:
    if not key:
        return default_task_day(now)
    if key in DAY_KEYS:
        return add_days(to_zone(now, settings.BUSINESS_TIMEZONE).date(), DAY_KEYS[key])
    try:
        return parse_ymd(key)
    except ValueError:
        raise ValidationError("day must be today, tomorrow, day_after or YYYY-MM-DD")
