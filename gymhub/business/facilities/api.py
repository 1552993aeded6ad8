from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gymhub.business.facilities.schemas import (
    EquipmentCreate,
    EquipmentListQuery,
    EquipmentRead,
    EquipmentUpdate,
    GymCreate,
    GymListQuery,
    GymRead,
    GymUpdate,
    LocationCreate,
    LocationListQuery,
    LocationRead,
    LocationUpdate,
)
from gymhub.business.facilities.service import equipment_service, gym_service, location_service
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.schemas import Envelope, Page, envelope
from gymhub.platform.security.context import GYM_OWNER, SUPER_ADMIN, AuthContext


gyms_router = APIRouter(prefix="/gyms", tags=["gyms"])
locations_router = APIRouter(prefix="/locations", tags=["locations"])
equipment_router = APIRouter(prefix="/equipment", tags=["equipment"])

require_admin_or_owner = require_roles(SUPER_ADMIN, GYM_OWNER)


@gyms_router.post("", response_model=Envelope[GymRead], status_code=status.HTTP_201_CREATED)
def create_gym(
    payload: GymCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[GymRead]:
    return envelope("Gym created successfully", gym_service.create_gym(db, ctx, payload))


@gyms_router.post("/search", response_model=Page[GymRead])
def list_gyms(
    params: GymListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Page[GymRead]:
    return gym_service.list_gyms(db, ctx, params)


@gyms_router.post("/{gym_id}/update", response_model=Envelope[GymRead])
def update_gym(
    gym_id: uuid.UUID,
    payload: GymUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[GymRead]:
    return envelope("Gym updated successfully", gym_service.update_gym(db, ctx, gym_id, payload))


@gyms_router.post("/{gym_id}/toggle-active", response_model=Envelope[GymRead])
def toggle_gym_active(
    gym_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[GymRead]:
    gym = gym_service.toggle_gym_active(db, ctx, gym_id)
    return envelope("Gym activated" if gym.is_active else "Gym deactivated", gym)


@gyms_router.post("/{gym_id}/delete", response_model=Envelope[GymRead])
def delete_gym(
    gym_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[GymRead]:
    return envelope("Gym deleted successfully", gym_service.delete_gym(db, ctx, gym_id))


@locations_router.post("", response_model=Envelope[LocationRead], status_code=status.HTTP_201_CREATED)
def create_location(
    payload: LocationCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[LocationRead]:
    return envelope("Location created successfully", location_service.create_location(db, ctx, payload))


@locations_router.post("/search", response_model=Page[LocationRead])
def list_locations(
    params: LocationListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Page[LocationRead]:
    return location_service.list_locations(db, ctx, params)


@locations_router.post("/{location_id}/update", response_model=Envelope[LocationRead])
def update_location(
    location_id: uuid.UUID,
    payload: LocationUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[LocationRead]:
    return envelope("Location updated successfully", location_service.update_location(db, ctx, location_id, payload))


@locations_router.post("/{location_id}/delete", response_model=Envelope[LocationRead])
def delete_location(
    location_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[LocationRead]:
    return envelope("Location deleted successfully", location_service.delete_location(db, ctx, location_id))


@equipment_router.post("", response_model=Envelope[EquipmentRead], status_code=status.HTTP_201_CREATED)
def create_equipment(
    payload: EquipmentCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[EquipmentRead]:
    return envelope("Equipment created successfully", equipment_service.create_equipment(db, ctx, payload))


@equipment_router.post("/search", response_model=Page[EquipmentRead])
def list_equipment(
    params: EquipmentListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Page[EquipmentRead]:
    return equipment_service.list_equipment(db, ctx, params)


@equipment_router.post("/{equipment_id}/update", response_model=Envelope[EquipmentRead])
def update_equipment(
    equipment_id: uuid.UUID,
    payload: EquipmentUpdate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[EquipmentRead]:
    return envelope("Equipment updated successfully", equipment_service.update_equipment(db, ctx, equipment_id, payload))


@equipment_router.post("/{equipment_id}/delete", response_model=Envelope[EquipmentRead])
def delete_equipment(
    equipment_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_admin_or_owner),
) -> Envelope[EquipmentRead]:
    return envelope("Equipment deleted successfully", equipment_service.delete_equipment(db, ctx, equipment_id))
