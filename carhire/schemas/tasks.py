from pydantic import BaseModel
from typing import List, Literal, Optional

"""
TASKS ROUTE SCHEMA
"""


#One derived dispatch row, never persisted
class TaskOut(BaseModel):
    type: Literal["Deliver", "Pick up"]
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

    class Config:
        from_attributes = True


class TasksOut(BaseModel):
    date: str
    tasks: List[TaskOut]
