from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from gymhub import audit
from gymhub.business.accounts.models import User
from gymhub.business.facilities.models import Equipment, Gym, Location
from gymhub.business.facilities.repository import EquipmentRepository, GymRepository, LocationRepository
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
from gymhub.business.limits.service import LimitEnforcer
from gymhub.business.members.models import Member
from gymhub.business.subscriptions.service import commit_or_rollback
from gymhub.platform.errors import AuthorizationError, NotFoundError, ValidationError
from gymhub.platform.pagination import paginate
from gymhub.platform.schemas import Page
from gymhub.platform.security.context import GYM_OWNER, AuthContext


logger = logging.getLogger("gymhub.facilities")


def get_gym(session: Session, gym_id: uuid.UUID) -> Gym:
    gym = session.scalar(select(Gym).where(Gym.id == gym_id, Gym.is_deleted.is_(False)))
    if gym is None:
        raise NotFoundError("Gym not found")
    return gym


def get_location(session: Session, location_id: uuid.UUID) -> Location:
    location = session.scalar(select(Location).where(Location.id == location_id, Location.is_deleted.is_(False)))
    if location is None:
        raise NotFoundError("Location not found")
    return location


def get_owner(session: Session, owner_id: uuid.UUID) -> User:
    owner = session.scalar(
        select(User).where(User.id == owner_id, User.role == GYM_OWNER, User.is_deleted.is_(False))
    )
    if owner is None:
        raise NotFoundError("Owner not found")
    return owner


def _apply_changes(entity: Any, changes: dict[str, Any], *, skip: tuple[str, ...] = ()) -> None:
    for key, value in changes.items():
        if key in skip:
            continue
        if isinstance(value, str) and not value.strip():
            value = None
        setattr(entity, key, value)


def _record(ctx: AuthContext, entity_type: str, entity_id: uuid.UUID, action: str, after: dict[str, Any]) -> None:
    audit.record(str(ctx.user_id), entity_type, str(entity_id), action, None, after, ctx.correlation_id)


@dataclass(slots=True)
class GymService:
    gym_repository: GymRepository = GymRepository()
    limit_enforcer: LimitEnforcer = LimitEnforcer()

    def create_gym(self, session: Session, ctx: AuthContext, payload: GymCreate) -> GymRead:
        if ctx.is_gym_owner:
            owner_id = ctx.user_id
        elif payload.owner_id is None:
            raise ValidationError("Missing required field: owner_id")
        else:
            owner_id = payload.owner_id
        self.gym_repository.validate_write_security(owner_id, ctx, action="create")
        get_owner(session, owner_id)
        self.limit_enforcer.enforce(session, owner_id, "gym")

        gym = Gym(owner_id=owner_id, name=payload.name)
        _apply_changes(gym, payload.model_dump(exclude={"owner_id", "name"}))
        session.add(gym)
        commit_or_rollback(session, "gym could not be created")
        session.refresh(gym)

        _record(ctx, "gym", gym.id, "gym.created", {"owner_id": str(owner_id), "name": gym.name})
        logger.info("gym.created", extra={"owner_id": str(owner_id)})
        return GymRead.model_validate(gym)

    def update_gym(self, session: Session, ctx: AuthContext, gym_id: uuid.UUID, payload: GymUpdate) -> GymRead:
        gym = get_gym(session, gym_id)
        self.gym_repository.validate_write_security(gym.owner_id, ctx, action="update", entity_id=gym.id)
        changes = payload.model_dump(exclude_unset=True)

        new_owner_id = changes.get("owner_id")
        if new_owner_id is not None and new_owner_id != gym.owner_id:
            if ctx.is_gym_owner:
                raise AuthorizationError("You cannot change the owner of a gym")
            get_owner(session, new_owner_id)
            self.limit_enforcer.enforce(session, new_owner_id, "gym", excluding_id=gym.id)
            location_ids = session.scalars(
                select(Location.id).where(Location.gym_id == gym.id, Location.is_deleted.is_(False))
            ).all()
            self.limit_enforcer.enforce_transfer(session, new_owner_id, location_ids, gym_id=gym.id)
            gym.owner_id = new_owner_id

        _apply_changes(gym, changes, skip=("owner_id",))
        if not gym.name:
            session.rollback()
            raise ValidationError("name cannot be empty")
        commit_or_rollback(session, "gym could not be updated")
        session.refresh(gym)

        _record(ctx, "gym", gym.id, "gym.updated", {"owner_id": str(gym.owner_id), "name": gym.name})
        return GymRead.model_validate(gym)

    def toggle_gym_active(self, session: Session, ctx: AuthContext, gym_id: uuid.UUID) -> GymRead:
        gym = get_gym(session, gym_id)
        self.gym_repository.validate_write_security(gym.owner_id, ctx, action="toggle", entity_id=gym.id)
        gym.is_active = not gym.is_active
        commit_or_rollback(session, "gym could not be updated")
        session.refresh(gym)

        _record(ctx, "gym", gym.id, "gym.activated" if gym.is_active else "gym.deactivated", {"is_active": gym.is_active})
        return GymRead.model_validate(gym)

    def delete_gym(self, session: Session, ctx: AuthContext, gym_id: uuid.UUID) -> GymRead:
        gym = get_gym(session, gym_id)
        self.gym_repository.validate_write_security(gym.owner_id, ctx, action="delete", entity_id=gym.id)
        gym.is_deleted = True
        gym.is_active = False
        commit_or_rollback(session, "gym could not be deleted")
        session.refresh(gym)

        _record(ctx, "gym", gym.id, "gym.deleted", {"is_deleted": True})
        return GymRead.model_validate(gym)

    def list_gyms(self, session: Session, ctx: AuthContext, params: GymListQuery) -> Page[GymRead]:
        query = self.gym_repository.apply_scope_query(select(Gym).where(Gym.is_deleted.is_(False)), ctx)
        if params.owner_id is not None:
            query = query.where(Gym.owner_id == params.owner_id)
        if params.is_active is not None:
            query = query.where(Gym.is_active.is_(params.is_active))
        term = params.search_term
        if term is not None:
            needle = term.lower()
            query = query.where(
                or_(
                    func.lower(Gym.name).contains(needle, autoescape=True),
                    func.lower(Gym.city).contains(needle, autoescape=True),
                )
            )

        result = paginate(session, query, params, created_at=Gym.created_at)
        return Page[GymRead](
            data=[GymRead.model_validate(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )


@dataclass(slots=True)
class LocationService:
    location_repository: LocationRepository = LocationRepository()
    limit_enforcer: LimitEnforcer = LimitEnforcer()

    def create_location(self, session: Session, ctx: AuthContext, payload: LocationCreate) -> LocationRead:
        gym = get_gym(session, payload.gym_id)
        self.location_repository.validate_write_security(gym.owner_id, ctx, action="create")
        self.limit_enforcer.enforce(session, gym.owner_id, "location")

        location = Location(gym_id=gym.id, name=payload.name)
        _apply_changes(location, payload.model_dump(exclude={"gym_id", "name"}))
        session.add(location)
        commit_or_rollback(session, "location could not be created")
        session.refresh(location)

        _record(ctx, "location", location.id, "location.created", {"gym_id": str(gym.id), "name": location.name})
        return LocationRead.model_validate(location)

    def update_location(
        self,
        session: Session,
        ctx: AuthContext,
        location_id: uuid.UUID,
        payload: LocationUpdate,
    ) -> LocationRead:
        location = get_location(session, location_id)
        self.location_repository.validate_write_security(location.gym.owner_id, ctx, action="update", entity_id=location.id)
        changes = payload.model_dump(exclude_unset=True)

        new_gym_id = changes.get("gym_id")
        if new_gym_id is not None and new_gym_id != location.gym_id:
            if ctx.is_gym_owner:
                raise AuthorizationError("You cannot change the gym for a location")
            target_gym = get_gym(session, new_gym_id)
            self.limit_enforcer.enforce(session, target_gym.owner_id, "location", excluding_id=location.id)
            if target_gym.owner_id != location.gym.owner_id:
                self.limit_enforcer.enforce_transfer(session, target_gym.owner_id, [location.id])
            location.gym_id = target_gym.id
            # members and equipment follow their location into the new gym
            for model in (Equipment, Member):
                session.execute(
                    update(model)
                    .where(model.location_id == location.id)
                    .values(gym_id=target_gym.id)
                    .execution_options(synchronize_session="fetch")
                )

        _apply_changes(location, changes, skip=("gym_id",))
        if not location.name:
            session.rollback()
            raise ValidationError("name cannot be empty")
        commit_or_rollback(session, "location could not be updated")
        session.refresh(location)

        _record(ctx, "location", location.id, "location.updated", {"gym_id": str(location.gym_id), "name": location.name})
        return LocationRead.model_validate(location)

    def delete_location(self, session: Session, ctx: AuthContext, location_id: uuid.UUID) -> LocationRead:
        location = get_location(session, location_id)
        self.location_repository.validate_write_security(location.gym.owner_id, ctx, action="delete", entity_id=location.id)
        location.is_deleted = True
        location.is_active = False
        commit_or_rollback(session, "location could not be deleted")
        session.refresh(location)

        _record(ctx, "location", location.id, "location.deleted", {"is_deleted": True})
        return LocationRead.model_validate(location)

    def list_locations(self, session: Session, ctx: AuthContext, params: LocationListQuery) -> Page[LocationRead]:
        query = self.location_repository.apply_scope_query(select(Location).where(Location.is_deleted.is_(False)), ctx)
        if params.gym_id is not None:
            query = query.where(Location.gym_id == params.gym_id)
        term = params.search_term
        if term is not None:
            needle = term.lower()
            query = query.where(
                or_(
                    func.lower(Location.name).contains(needle, autoescape=True),
                    func.lower(Location.city).contains(needle, autoescape=True),
                )
            )

        result = paginate(session, query, params, created_at=Location.created_at)
        return Page[LocationRead](
            data=[LocationRead.model_validate(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )


@dataclass(slots=True)
class EquipmentService:
    equipment_repository: EquipmentRepository = EquipmentRepository()
    limit_enforcer: LimitEnforcer = LimitEnforcer()

    def create_equipment(self, session: Session, ctx: AuthContext, payload: EquipmentCreate) -> EquipmentRead:
        gym = get_gym(session, payload.gym_id)
        self.equipment_repository.validate_write_security(gym.owner_id, ctx, action="create")
        if payload.location_id is not None:
            self._require_gym_location(session, gym, payload.location_id)
        self.limit_enforcer.enforce(session, gym.owner_id, "equipment", payload.location_id)

        equipment = Equipment(**payload.model_dump(mode="python"))
        session.add(equipment)
        commit_or_rollback(session, "equipment could not be created")
        session.refresh(equipment)

        _record(ctx, "equipment", equipment.id, "equipment.created", {"gym_id": str(gym.id), "name": equipment.name})
        return EquipmentRead.model_validate(equipment)

    def update_equipment(
        self,
        session: Session,
        ctx: AuthContext,
        equipment_id: uuid.UUID,
        payload: EquipmentUpdate,
    ) -> EquipmentRead:
        equipment = self._get_equipment(session, equipment_id)
        gym = get_gym(session, equipment.gym_id)
        self.equipment_repository.validate_write_security(gym.owner_id, ctx, action="update", entity_id=equipment.id)
        changes = payload.model_dump(mode="python", exclude_unset=True)

        new_location_id = changes.get("location_id")
        if new_location_id is not None and new_location_id != equipment.location_id:
            self._require_gym_location(session, gym, new_location_id)
            self.limit_enforcer.enforce(session, gym.owner_id, "equipment", new_location_id, excluding_id=equipment.id)
            equipment.location_id = new_location_id

        _apply_changes(equipment, changes, skip=("location_id",))
        if not equipment.name or not equipment.type:
            session.rollback()
            raise ValidationError("name and type cannot be empty")
        commit_or_rollback(session, "equipment could not be updated")
        session.refresh(equipment)

        _record(ctx, "equipment", equipment.id, "equipment.updated", {"location_id": str(equipment.location_id)})
        return EquipmentRead.model_validate(equipment)

    def delete_equipment(self, session: Session, ctx: AuthContext, equipment_id: uuid.UUID) -> EquipmentRead:
        equipment = self._get_equipment(session, equipment_id)
        gym = get_gym(session, equipment.gym_id)
        self.equipment_repository.validate_write_security(gym.owner_id, ctx, action="delete", entity_id=equipment.id)
        equipment.is_deleted = True
        commit_or_rollback(session, "equipment could not be deleted")
        session.refresh(equipment)

        _record(ctx, "equipment", equipment.id, "equipment.deleted", {"is_deleted": True})
        return EquipmentRead.model_validate(equipment)

    def list_equipment(self, session: Session, ctx: AuthContext, params: EquipmentListQuery) -> Page[EquipmentRead]:
        query = self.equipment_repository.apply_scope_query(select(Equipment).where(Equipment.is_deleted.is_(False)), ctx)
        if params.gym_id is not None:
            query = query.where(Equipment.gym_id == params.gym_id)
        if params.location_id is not None:
            query = query.where(Equipment.location_id == params.location_id)
        term = params.search_term
        if term is not None:
            needle = term.lower()
            query = query.where(
                or_(
                    func.lower(Equipment.name).contains(needle, autoescape=True),
                    func.lower(Equipment.type).contains(needle, autoescape=True),
                    func.lower(Equipment.brand).contains(needle, autoescape=True),
                )
            )

        result = paginate(session, query, params, created_at=Equipment.created_at)
        return Page[EquipmentRead](
            data=[EquipmentRead.model_validate(item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )

    @staticmethod
    def _get_equipment(session: Session, equipment_id: uuid.UUID) -> Equipment:
        equipment = session.scalar(select(Equipment).where(Equipment.id == equipment_id, Equipment.is_deleted.is_(False)))
        if equipment is None:
            raise NotFoundError("Equipment not found")
        return equipment

    @staticmethod
    def _require_gym_location(session: Session, gym: Gym, location_id: uuid.UUID) -> Location:
        location = get_location(session, location_id)
        if location.gym_id != gym.id:
            raise ValidationError("Location does not belong to the selected gym")
        return location


gym_service = GymService()
location_service = LocationService()
equipment_service = EquipmentService()
