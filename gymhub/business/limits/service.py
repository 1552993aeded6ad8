from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import NoReturn

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gymhub.business.facilities.models import Equipment, Gym, Location, owned_gym_ids
from gymhub.business.limits.schemas import CurrentCounts, LimitCheckRead, ResourceType, SubscriptionLimits
from gymhub.business.members.models import Member
from gymhub.business.plans.models import Plan
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.core.config import get_settings
from gymhub.metrics import observe_limit_exceeded
from gymhub.platform.errors import LimitExceededError, NotFoundError, SubscriptionInactiveError, ValidationError


logger = logging.getLogger("gymhub.limits")

_PER_LOCATION = ("member", "equipment")


def limits_for(plan: Plan | None) -> SubscriptionLimits:
    if plan is None:
        return SubscriptionLimits()
    return SubscriptionLimits(
        max_gyms=plan.max_gyms,
        max_locations=plan.max_locations,
        max_members=plan.max_members,
        max_equipment=plan.max_equipment,
    )


class LimitEnforcer:
    """Compares an owner's live resource usage against the quota of their active plan."""

    def active_subscription(self, session: Session, owner_id: uuid.UUID) -> OwnerSubscription | None:
        return session.scalar(
            select(OwnerSubscription)
            .join(Plan, Plan.id == OwnerSubscription.plan_id)
            .where(
                OwnerSubscription.owner_id == owner_id,
                OwnerSubscription.is_active.is_(True),
                OwnerSubscription.is_expired.is_(False),
                OwnerSubscription.is_deleted.is_(False),
            )
            .order_by(OwnerSubscription.created_at.desc())
            .limit(1)
        )

    def current_counts(self, session: Session, owner_id: uuid.UUID) -> CurrentCounts:
        return CurrentCounts(
            gyms=self.count_resources(session, owner_id, "gym"),
            locations=self.count_resources(session, owner_id, "location"),
            members=self.count_resources(session, owner_id, "member"),
            equipment=self.count_resources(session, owner_id, "equipment"),
        )

    def count_resources(
        self,
        session: Session,
        owner_id: uuid.UUID,
        resource_type: ResourceType,
        location_id: uuid.UUID | None = None,
        *,
        excluding_id: uuid.UUID | None = None,
    ) -> int:
        if resource_type == "gym":
            model = Gym
            conditions = [Gym.owner_id == owner_id, Gym.is_deleted.is_(False)]
        elif resource_type == "location":
            model = Location
            conditions = [Location.is_deleted.is_(False), Location.gym_id.in_(owned_gym_ids(owner_id))]
        elif resource_type == "member":
            model = Member
            conditions = [Member.is_deleted.is_(False)]
            if location_id is not None:
                conditions.append(Member.location_id == location_id)
            else:
                conditions.append(Member.gym_id.in_(owned_gym_ids(owner_id)))
        elif resource_type == "equipment":
            model = Equipment
            conditions = [Equipment.is_deleted.is_(False)]
            if location_id is not None:
                conditions.append(Equipment.location_id == location_id)
            else:
                conditions.append(Equipment.gym_id.in_(owned_gym_ids(owner_id)))
        else:
            raise ValidationError(f"Unknown resource type: {resource_type}")

        if excluding_id is not None:
            conditions.append(model.id != excluding_id)
        return int(session.scalar(select(func.count()).select_from(model).where(*conditions)) or 0)

    def check_limit_exceeded(
        self,
        session: Session,
        owner_id: uuid.UUID,
        resource_type: ResourceType,
        location_id: uuid.UUID | None = None,
        *,
        excluding_id: uuid.UUID | None = None,
    ) -> LimitCheckRead:
        subscription = self.active_subscription(session, owner_id)
        if subscription is None or subscription.plan is None:
            return LimitCheckRead(exceeded=False, current=0, max=0, resource_type=resource_type)

        if resource_type in _PER_LOCATION and location_id is not None:
            self._require_owned_location(session, owner_id, location_id)
        else:
            location_id = None

        limits = limits_for(subscription.plan)
        maximum = {
            "gym": limits.max_gyms,
            "location": limits.max_locations,
            "member": limits.max_members,
            "equipment": limits.max_equipment,
        }[resource_type]
        current = self.count_resources(session, owner_id, resource_type, location_id, excluding_id=excluding_id)
        return LimitCheckRead(
            exceeded=current >= maximum,
            current=current,
            max=maximum,
            resource_type=resource_type,
            location_id=location_id,
        )

    def enforce(
        self,
        session: Session,
        owner_id: uuid.UUID,
        resource_type: ResourceType,
        location_id: uuid.UUID | None = None,
        *,
        excluding_id: uuid.UUID | None = None,
    ) -> LimitCheckRead:
        """Raise before any write when the owner may not add one more resource."""

        if not get_settings().allow_without_subscription and self.active_subscription(session, owner_id) is None:
            raise SubscriptionInactiveError("Subscription is expired or inactive", details={"owner_id": str(owner_id)})

        result = self.check_limit_exceeded(session, owner_id, resource_type, location_id, excluding_id=excluding_id)
        if result.exceeded:
            self._reject(owner_id, resource_type, result.current, result.max, result.location_id)
        return result

    def enforce_transfer(
        self,
        session: Session,
        owner_id: uuid.UUID,
        location_ids: Sequence[uuid.UUID],
        *,
        gym_id: uuid.UUID | None = None,
    ) -> None:
        """Raise before resources owned elsewhere are handed over to ``owner_id``.

        Member and equipment quotas apply per location, so every moving location must
        fit the owner's plan on its own. When a whole gym moves (``gym_id``), its
        locations and its equipment without a location are added to the owner's totals.
        """

        subscription = self.active_subscription(session, owner_id)
        if subscription is None or subscription.plan is None:
            return
        limits = limits_for(subscription.plan)

        if gym_id is not None and location_ids:
            current = self.count_resources(session, owner_id, "location")
            if current + len(location_ids) > limits.max_locations:
                self._reject(owner_id, "location", current, limits.max_locations)

        for location_id in location_ids:
            members = self.count_resources(session, owner_id, "member", location_id)
            if members > limits.max_members:
                self._reject(owner_id, "member", members, limits.max_members, location_id)
            equipment = self.count_resources(session, owner_id, "equipment", location_id)
            if equipment > limits.max_equipment:
                self._reject(owner_id, "equipment", equipment, limits.max_equipment, location_id)

        if gym_id is not None:
            unlocated = int(
                session.scalar(
                    select(func.count())
                    .select_from(Equipment)
                    .where(
                        Equipment.gym_id == gym_id,
                        Equipment.location_id.is_(None),
                        Equipment.is_deleted.is_(False),
                    )
                )
                or 0
            )
            if unlocated:
                current = self.count_resources(session, owner_id, "equipment")
                if current + unlocated > limits.max_equipment:
                    self._reject(owner_id, "equipment", current, limits.max_equipment)

    @staticmethod
    def _reject(
        owner_id: uuid.UUID,
        resource_type: ResourceType,
        current: int,
        maximum: int,
        location_id: uuid.UUID | None = None,
    ) -> NoReturn:
        observe_limit_exceeded(resource_type)
        logger.info(
            "limit.exceeded",
            extra={"owner_id": str(owner_id), "resource_type": resource_type, "current": current, "max": maximum},
        )
        raise LimitExceededError(
            resource_type,
            current,
            maximum,
            str(location_id) if location_id is not None else None,
        )

    @staticmethod
    def _require_owned_location(session: Session, owner_id: uuid.UUID, location_id: uuid.UUID) -> Location:
        location = session.scalar(
            select(Location).where(
                Location.id == location_id,
                Location.is_deleted.is_(False),
                Location.gym_id.in_(owned_gym_ids(owner_id)),
            )
        )
        if location is None:
            raise NotFoundError("Location not found or does not belong to owner")
        return location


limit_enforcer = LimitEnforcer()
