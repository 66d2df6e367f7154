from sqlalchemy.orm import Session

from carhire.core.errors import NotFoundError
from carhire.db.models import Vehicle
from carhire.schemas.vehicles import VehicleCreate, VehicleUpdate
from carhire.services.audit import log_action


def list_vehicles(db: Session, active_only: bool = True) -> list[Vehicle]:
    query = db.query(Vehicle)
    if active_only:
        query = query.filter(Vehicle.is_active == True)  # noqa: E712
    return query.order_by(Vehicle.title.asc()).all()


def create_vehicle(db: Session, payload: VehicleCreate) -> Vehicle:
    vehicle = Vehicle(**payload.model_dump())
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)

    log_action(db=db, actor_type="admin", action="vehicle.created", details=f"vehicle_id={vehicle.id}")
    return vehicle


def update_vehicle(db: Session, payload: VehicleUpdate) -> Vehicle:
    vehicle = db.get(Vehicle, payload.id)
    if not vehicle:
        raise NotFoundError("Vehicle not found.")

    for key, value in payload.model_dump(exclude={"id"}, exclude_unset=True).items():
        setattr(vehicle, key, value)
    db.commit()
    db.refresh(vehicle)

    log_action(db=db, actor_type="admin", action="vehicle.updated", details=f"vehicle_id={vehicle.id}")
    return vehicle


#Hard delete; the vehicle's bookings go with it
def delete_vehicle(db: Session, vehicle_id: str) -> None:
    vehicle = db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found.")

    db.delete(vehicle)
    db.commit()

    log_action(db=db, actor_type="admin", action="vehicle.deleted", details=f"vehicle_id={vehicle_id}")
