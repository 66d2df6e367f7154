from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from carhire.api.deps import require_admin
from carhire.db.session import get_db
from carhire.schemas.vehicles import (
    VehicleCreate,
    VehicleDelete,
    VehicleListItem,
    VehicleOut,
    VehicleUpdate,
)
from carhire.services.availability import safe_bulk_availability
from carhire.services.vehicles import (
    create_vehicle,
    delete_vehicle,
    list_vehicles,
    update_vehicle,
)

router = APIRouter(
    prefix="/vehicles",
    tags=["Vehicles"],
)

admin_router = APIRouter(
    prefix="/admin/vehicles",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


"""
VEHICLE ROUTES => PUBLIC LISTING, ADMIN FLEET CRUD

The listing never fails because availability could not be loaded: the
blocked ranges degrade to empty lists.
"""


#Active fleet, optionally with each vehicle's blocked ranges
@router.get("", response_model=List[VehicleListItem])
def get_vehicles(
    withAvailability: bool = Query(False),
    db: Session = Depends(get_db),
):
    vehicles = list_vehicles(db)

    blocked = {}
    if withAvailability:
        blocked = safe_bulk_availability(db, [v.id for v in vehicles])

    return [
        {
            **VehicleOut.model_validate(v).model_dump(),
            "blocked": [r.as_dict() for r in blocked.get(v.id, [])],
        }
        for v in vehicles
    ]


@admin_router.post("/create", status_code=201, response_model=VehicleOut)
def admin_create_vehicle(
    payload: VehicleCreate,
    db: Session = Depends(get_db),
):
    return create_vehicle(db, payload)


@admin_router.post("/update", response_model=VehicleOut)
def admin_update_vehicle(
    payload: VehicleUpdate,
    db: Session = Depends(get_db),
):
    return update_vehicle(db, payload)


@admin_router.post("/delete")
def admin_delete_vehicle(
    payload: VehicleDelete,
    db: Session = Depends(get_db),
):
    delete_vehicle(db, payload.id)
    return {"ok": True}
