from sqlalchemy.orm import Session

from carhire.core.errors import NotFoundError, ValidationError
from carhire.db import repository
from carhire.db.models import ServiceLocation
from carhire.schemas.locations import LocationCreate, LocationUpdate
from carhire.services.audit import log_action


LOCATION_NOT_FOUND = "Location not found."


def list_locations(db: Session, active_only: bool = True) -> list[ServiceLocation]:
    query = db.query(ServiceLocation)
    if active_only:
        query = query.filter(ServiceLocation.is_active == True)  # noqa: E712
    return query.order_by(ServiceLocation.name.asc()).all()


#Booking form value -> active location row, or a 400 naming the field
def resolve_location(db: Session, name: str, kind: str) -> ServiceLocation:
    location = repository.active_location(db, name)
    if location is None:
        raise ValidationError(
            f'{kind} location not allowed: "{name}". '
            "Please choose one of the active service locations."
        )
    return location


def create_location(db: Session, payload: LocationCreate) -> ServiceLocation:
    data = payload.model_dump()
    data["name"] = data["name"].strip()

    location = ServiceLocation(**data)
    db.add(location)
    db.commit()
    db.refresh(location)

    log_action(db=db, actor_type="admin", action="location.created", details=f"location_id={location.id}")
    return location


def update_location(db: Session, payload: LocationUpdate) -> ServiceLocation:
    location = db.get(ServiceLocation, payload.id)
    if not location:
        raise NotFoundError(LOCATION_NOT_FOUND)

    for key, value in payload.model_dump(exclude={"id"}, exclude_unset=True).items():
        setattr(location, key, value.strip() if key == "name" else value)
    db.commit()
    db.refresh(location)

    log_action(db=db, actor_type="admin", action="location.updated", details=f"location_id={location.id}")
    return location


#Existing bookings keep the stored name and fees
def delete_location(db: Session, location_id: str) -> None:
    location = db.get(ServiceLocation, location_id)
    if not location:
        raise NotFoundError(LOCATION_NOT_FOUND)

    db.delete(location)
    db.commit()

    log_action(db=db, actor_type="admin", action="location.deleted", details=f"location_id={location_id}")
