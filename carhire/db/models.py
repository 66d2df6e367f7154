from datetime import datetime, timezone
from enum import Enum
import uuid

from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Integer,
    Numeric,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from carhire.db.base import Base


# =========================================================
# SHARED ENUMS:
# =========================================================


#Canonical booking status. Rows written by older clients may hold any
#casing ("CONFIRMED", "Pending"), so the column stays a plain string and
#values are normalised on read.
class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"
    PAY_LATER = "pay_later"


PAID_IN_FULL = "paid_in_full"


def normalize_status(value) -> BookingStatus | None:
    if value is None:
        return None
    if isinstance(value, BookingStatus):
        return value
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if key == "paylater":
        key = "pay_later"
    try:
        return BookingStatus(key)
    except ValueError:
        return None


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =========================================================
# VEHICLES:
# =========================================================


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String, primary_key=True, default=_new_id)
    title = Column(String, nullable=False)
    registration_number = Column(String, nullable=True, index=True)

    #Display-only metadata
    price_per_day = Column(Numeric(10, 2), nullable=True)
    seats = Column(Integer, nullable=True)
    transmission = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    bookings = relationship("Booking", back_populates="vehicle", cascade="all, delete-orphan")


# =========================================================
# BOOKINGS:
# =========================================================


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, default=_new_id)
    code = Column(String, unique=True, nullable=True, index=True)

    vehicle_id = Column(String, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)

    #Inclusive calendar range, times are optional HH:MM strings
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    pickup_time = Column(String(8), nullable=True)
    dropoff_time = Column(String(8), nullable=True)

    pickup_location = Column(String, nullable=False)
    dropoff_location = Column(String, nullable=False)

    #Customer details are denormalised onto the booking
    customer_name = Column(String, nullable=False)
    contact_number = Column(String, nullable=False)
    email = Column(String, nullable=False)
    flight_number = Column(String, nullable=True)

    #Includes the pickup and drop-off location fees
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    pickup_fee_fjd = Column(Numeric(10, 2), nullable=False, default=0)
    dropoff_fee_fjd = Column(Numeric(10, 2), nullable=False, default=0)

    payment_status = Column(String, nullable=True)
    amount_paid = Column(Numeric(10, 2), nullable=True)

    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    vehicle = relationship("Vehicle", back_populates="bookings")

    __table_args__ = (
        Index("ix_booking_vehicle_dates", "vehicle_id", "start_date", "end_date"),
        CheckConstraint("end_date >= start_date", name="ck_booking_dates_valid"),
    )


# =========================================================
# SERVICE LOCATIONS:
# =========================================================


#Where cars can be delivered to or collected from, with the fee charged
class ServiceLocation(Base):
    __tablename__ = "service_locations"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False, unique=True)
    fee_fjd = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


# =========================================================
# AUDIT LOGS:
# =========================================================


#Immutable audit log entry for booking and fleet writes
class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    actor_type = Column(String, nullable=False)
    action = Column(String, nullable=False)
    details = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
