from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from carhire.api.deps import require_admin
from carhire.db.session import get_db
from carhire.schemas.locations import (
    LocationCreate,
    LocationDelete,
    LocationOut,
    LocationUpdate,
)
from carhire.services.locations import (
    create_location,
    delete_location,
    list_locations,
    update_location,
)

router = APIRouter(
    prefix="/locations",
    tags=["Locations"],
)

admin_router = APIRouter(
    prefix="/admin/locations",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


"""
SERVICE LOCATION ROUTES => PUBLIC PICKER, ADMIN CRUD
"""


#Active pickup / drop-off points with their fees
@router.get("", response_model=List[LocationOut])
def get_locations(db: Session = Depends(get_db)):
    return list_locations(db)


@admin_router.post("/create", status_code=201, response_model=LocationOut)
def admin_create_location(
    payload: LocationCreate,
    db: Session = Depends(get_db),
):
    return create_location(db, payload)


@admin_router.post("/update", response_model=LocationOut)
def admin_update_location(
    payload: LocationUpdate,
    db: Session = Depends(get_db),
):
    return update_location(db, payload)


@admin_router.post("/delete")
def admin_delete_location(
    payload: LocationDelete,
    db: Session = Depends(get_db),
):
    delete_location(db, payload.id)
    return {"ok": True}
