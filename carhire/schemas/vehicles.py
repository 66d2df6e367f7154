from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime
from typing import List, Optional

from carhire.schemas.availability import RangeOut

"""
VEHICLE ROUTE SCHEMA
"""


#Payload used by the admin fleet form
class VehicleCreate(BaseModel):
    title: str = Field(..., min_length=1)
    registration_number: Optional[str] = None
    price_per_day: Optional[Decimal] = None
    seats: Optional[int] = Field(None, ge=1)
    transmission: Optional[str] = None
    is_active: bool = True


class VehicleUpdate(BaseModel):
    id: str
    title: Optional[str] = Field(None, min_length=1)
    registration_number: Optional[str] = None
    price_per_day: Optional[Decimal] = None
    seats: Optional[int] = Field(None, ge=1)
    transmission: Optional[str] = None
    is_active: Optional[bool] = None


class VehicleDelete(BaseModel):
    id: str


class VehicleOut(BaseModel):
    id: str
    title: str
    registration_number: Optional[str]
    price_per_day: Optional[Decimal]
    seats: Optional[int]
    transmission: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


#Public listing row with its blocked calendar ranges
class VehicleListItem(VehicleOut):
    blocked: List[RangeOut] = Field(default_factory=list)
