import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Mapping

from sqlalchemy.orm import Session

from carhire.core.config import settings
from carhire.core.dates import add_days, minutes_between, to_hm, to_zone
from carhire.db import repository
from carhire.db.models import Booking
from carhire.services import whatsapp
from carhire.services.tasks import (
    DELIVER,
    booking_code,
    build_tasks,
    dispatchable,
    dropoff_hm,
    group_by_vehicle,
    pickup_hm,
)

logger = logging.getLogger(__name__)


"""
SCHEDULED DIGEST => TOMORROW'S TASKS + LOGISTICS WARNINGS

Runs from a cron hitting the scheduler route hourly; it only sends inside
the 15:00-15:14 window in the business timezone unless forced. Everything
here is advisory text, nothing is written back.
"""


CLEAN_GAP_MAX_MINUTES = 360


@dataclass
class DigestResult:
    date: str
    preview: str
    recipients: list[str]
    delivered_to: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "ok": True,
            "date": self.date,
            "preview": self.preview,
            "recipients": self.recipients,
            "delivered_to": self.delivered_to,
        }


def _vehicle_label(vehicle_id: str | None, vehicles: Mapping) -> str:
    vehicle = vehicles.get(vehicle_id) if vehicle_id else None
    if vehicle is None:
        return "Vehicle"
    if vehicle.registration_number:
        return f"{vehicle.title} ({vehicle.registration_number})"
    return vehicle.title or "Vehicle"


# -------------------------------------------------------------------
# Checks
# -------------------------------------------------------------------
def detect_conflicts(rows: Iterable[Booking], day: date) -> list[str]:
    """
    Same vehicle, two or more bookings starting on `day`: flag each
    adjacent pair (by pickup time) where the earlier drop-off is later
    than the next pickup. HH:MM strings compare correctly as text.
    """
    starting = [b for b in rows if b.start_date == day and b.vehicle_id]

    conflicts = []
    for bookings in group_by_vehicle(starting).values():
        if len(bookings) < 2:
            continue
        ordered = sorted(bookings, key=lambda b: to_hm(b.pickup_time) or "00:00")
        for a, b in zip(ordered, ordered[1:]):
            a_end = to_hm(a.dropoff_time) or "23:59"
            b_start = to_hm(b.pickup_time) or "00:00"
            if a_end > b_start:
                conflicts.append(f"{booking_code(a)} ↔ {booking_code(b)}")
    return conflicts


def _loc(value: str | None) -> str:
    return (value or "").strip().lower()


#Vehicle left somewhere today and needed somewhere else tomorrow
def detect_moves(
    today_end_rows: Iterable[Booking],
    tomorrow_rows: Iterable[Booking],
    tomorrow: date,
    vehicles: Mapping | None = None,
) -> list[str]:
    vehicles = vehicles or {}
    last_drop = {}
    for vid, bookings in group_by_vehicle(today_end_rows).items():
        last_drop[vid] = max(bookings, key=dropoff_hm)

    moves = []
    starting = [b for b in tomorrow_rows if b.start_date == tomorrow]
    for vid, bookings in group_by_vehicle(starting).items():
        prev = last_drop.get(vid)
        if vid == "_" or prev is None:
            continue
        first = min(bookings, key=pickup_hm)
        if _loc(prev.dropoff_location) != _loc(first.pickup_location):
            moves.append(
                f"MOVE {_vehicle_label(vid, vehicles)}: "
                f"{prev.dropoff_location or '?'} → {first.pickup_location or '?'} "
                f"before {pickup_hm(first)} ({booking_code(first)})"
            )
    return moves


#Short turnaround windows between a drop-off and the next pickup
def detect_clean_gaps(
    rows: Iterable[Booking],
    day: date,
    vehicles: Mapping | None = None,
) -> list[str]:
    vehicles = vehicles or {}
    timeline = defaultdict(list)
    for b in rows:
        if not b.vehicle_id:
            continue
        if b.end_date == day:
            timeline[b.vehicle_id].append((dropoff_hm(b), 0, "drop", b))
        if b.start_date == day:
            timeline[b.vehicle_id].append((pickup_hm(b), 1, "pick", b))

    gaps = []
    for vid, events in timeline.items():
        events.sort(key=lambda e: (e[0], e[1]))
        for (t1, _, kind1, a), (t2, _, kind2, b) in zip(events, events[1:]):
            if kind1 != "drop" or kind2 != "pick" or a.id == b.id:
                continue
            gap = minutes_between(t1, t2)
            if 0 < gap < CLEAN_GAP_MAX_MINUTES:
                gaps.append(
                    f"CLEAN {_vehicle_label(vid, vehicles)}: {gap} min "
                    f"between {booking_code(a)} drop-off {t1} and {booking_code(b)} pickup {t2}"
                )
    return gaps


# -------------------------------------------------------------------
# Text
# -------------------------------------------------------------------
def build_digest_text(
    day: date,
    rows: list[Booking],
    today_end_rows: list[Booking],
    vehicles: Mapping,
) -> str:
    rows = dispatchable(rows)
    today_end_rows = dispatchable(today_end_rows)

    tasks = build_tasks(rows, day, vehicles)
    conflicts = detect_conflicts(rows, day)
    moves = detect_moves(today_end_rows, rows, day, vehicles)
    cleans = detect_clean_gaps(rows, day, vehicles)

    lines = [f"Tomorrow ({day.strftime('%a, %b')} {day.day})", "", "Tasks"]

    if not tasks:
        lines.append("• —")

    for t in tasks:
        car = f"{t.vehicle_title} ({t.plate})" if t.plate else t.vehicle_title
        lines.append(f"• 🕒 {t.time} *{t.type}* — {t.booking_code}")
        lines.append(f"  🚗 Car: {car}")
        if t.customer_name:
            lines.append(f"  👤 Customer: {t.customer_name}")
        contact = " · ".join(c for c in (t.customer_phone, t.customer_email) if c)
        if contact:
            lines.append(f"  ☎️ Contact: {contact}")
        if t.flight_number:
            lines.append(f"  ✈️ Flight: {t.flight_number}")
        if t.type == DELIVER:
            if t.to_location:
                lines.append(f"  📍 To: {t.to_location}")
            if t.buffer_minutes is not None:
                lines.append(f"  ⏱ Turnaround: {t.buffer_minutes} min")
        elif t.from_location:
            lines.append(f"  📍 Pick up from: {t.from_location}")
        lines.append("")

    for title, items in (("Conflicts", conflicts), ("Moves", moves), ("Cleaning", cleans)):
        if items:
            lines.append(title)
            lines.extend(f"• {item}" for item in items)

    return "\n".join(lines)[: settings.DIGEST_MAX_CHARS]


# -------------------------------------------------------------------
# Scheduling
# -------------------------------------------------------------------
def in_send_window(now: datetime) -> bool:
    local = to_zone(now, settings.BUSINESS_TIMEZONE)
    return (
        local.hour == settings.DIGEST_SEND_HOUR
        and local.minute < settings.DIGEST_SEND_WINDOW_MINUTES
    )


def today_and_tomorrow(now: datetime) -> tuple[date, date]:
    local_day = to_zone(now, settings.BUSINESS_TIMEZONE).date()
    return local_day, add_days(local_day, 1)


def run_digest(
    db: Session,
    now: datetime,
    recipients: list[str] | None = None,
) -> DigestResult:
    """
    Build tomorrow's digest and send it to each recipient. A failed
    delivery is recorded in the result and does not stop the others.
    """
    today, tomorrow = today_and_tomorrow(now)

    rows = repository.dispatch_bookings(db, [tomorrow])
    today_end = repository.bookings_ending_on(db, today)
    vehicles = repository.vehicles_by_id(db, (b.vehicle_id for b in rows + today_end))

    text = build_digest_text(tomorrow, rows, today_end, vehicles)

    if recipients is None:
        recipients = whatsapp.digest_recipients()

    result = DigestResult(date=tomorrow.isoformat(), preview=text, recipients=recipients)
    for to in recipients:
        try:
            resp = whatsapp.send_text(to, text)
            result.delivered_to.append({"to": to, "ok": True, "resp": resp})
        except (RuntimeError, OSError) as e:
            logger.warning("Digest delivery to %s failed: %s", to, e)
            result.delivered_to.append({"to": to, "ok": False, "error": str(e)})

    logger.info("Digest for %s built, %d recipients", result.date, len(recipients))
    return result
