from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional

"""
SERVICE LOCATION ROUTE SCHEMA
"""


#Payload used by the admin locations form
class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    fee_fjd: Decimal = Field(Decimal("0"), ge=0)
    is_active: bool = True


class LocationUpdate(BaseModel):
    id: str
    name: Optional[str] = Field(None, min_length=1)
    fee_fjd: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None


class LocationDelete(BaseModel):
    id: str


class LocationOut(BaseModel):
    id: str
    name: str
    fee_fjd: Decimal
    is_active: bool

    class Config:
        from_attributes = True
