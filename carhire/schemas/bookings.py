from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from carhire.core.dates import is_valid_hhmm

"""
BOOKINGS ROUTE SCHEMA
"""


#Payload used by the public booking form
class BookingCreate(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    pickup_location: str = Field(..., min_length=1)
    dropoff_location: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    contact_number: str = Field(..., min_length=1)
    email: EmailStr

    pickup_time: Optional[str] = None
    dropoff_time: Optional[str] = None
    total_price: Optional[Decimal] = Field(None, ge=0)
    flight_number: Optional[str] = None

    @field_validator("pickup_time", "dropoff_time")
    @classmethod
    def _check_time(cls, value: Optional[str]):
        if value in (None, ""):
            return None
        if not is_valid_hhmm(value):
            raise ValueError("Pickup and drop-off times must be in HH:mm format")
        return value[:5]

    @model_validator(mode="after")
    def _check_order(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        if (
            self.start_date == self.end_date
            and self.pickup_time
            and self.dropoff_time
            and self.dropoff_time <= self.pickup_time
        ):
            raise ValueError("For the same day, drop-off time must be after pickup time")
        return self


#Response of a successful public booking
class BookingCreated(BaseModel):
    id: str
    code: str
    status: str
    total_price: Decimal
    pickup_fee_fjd: Decimal
    dropoff_fee_fjd: Decimal


#Admin confirm action, by id or human readable code
class BookingConfirmRequest(BaseModel):
    id: Optional[str] = None
    code: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    id: str
    status: Literal["cancelled", "declined", "completed", "pay_later"]


class BookingDelete(BaseModel):
    id: str


class BookingMarkPaid(BaseModel):
    id: str


#Response model representing a booking returned to the dashboard
class BookingOut(BaseModel):
    id: str
    code: Optional[str]
    vehicle_id: str
    start_date: date
    end_date: date
    pickup_time: Optional[str]
    dropoff_time: Optional[str]
    pickup_location: str
    dropoff_location: str
    customer_name: str
    contact_number: str
    email: str
    flight_number: Optional[str]
    total_price: Decimal
    pickup_fee_fjd: Decimal
    dropoff_fee_fjd: Decimal
    payment_status: Optional[str] = None
    amount_paid: Optional[Decimal] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class BookingConfirmOut(BaseModel):
    ok: bool = True
    booking: BookingOut
    message: Optional[str] = None


class BookingPaidOut(BaseModel):
    ok: bool = True
    booking: BookingOut


#Admin list row, enriched with the vehicle it reserves
class BookingListItem(BookingOut):
    vehicle_title: Optional[str] = None
    registration_number: Optional[str] = None
