from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union

"""
AVAILABILITY ROUTE SCHEMA
"""


#Inclusive blocked range, ISO dates
class RangeOut(BaseModel):
    start: str
    end: str


class AvailabilityOut(BaseModel):
    ranges: List[RangeOut]


#Body of POST /availability/bulk, loose types kept for older clients
class BulkAvailabilityRequest(BaseModel):
    vehicleIds: List[Union[str, int]] = Field(default_factory=list)
    includePending: Optional[Union[bool, int, str]] = None
    pendingHours: Optional[float] = None


class BulkAvailabilityOut(BaseModel):
    ok: bool = True
    results: Dict[str, List[RangeOut]]
