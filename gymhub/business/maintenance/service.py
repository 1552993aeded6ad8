from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gymhub import events
from gymhub.business.maintenance.schemas import ExpiryReminder, SweepSummary
from gymhub.business.members.models import MemberSubscription
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.business.subscriptions.periods import as_utc, utcnow
from gymhub.core.config import get_settings
from gymhub.metrics import observe_subscriptions_expired


logger = logging.getLogger("gymhub.maintenance")


def days_until(end_date: datetime, now: datetime) -> int:
    """Whole calendar days (UTC) between ``now`` and ``end_date``."""
    return (as_utc(end_date).date() - as_utc(now).date()).days


@dataclass(slots=True)
class ExpirySweeper:
    """Periodic maintenance over owner and member subscriptions.

    Subscriptions whose end date has passed are flipped to expired and inactive.
    Live subscriptions ending in one of the configured reminder days get a single
    ``subscription.expiring`` event per reminder day.
    """

    def expire_subscriptions(self, session: Session, now: datetime | None = None) -> SweepSummary:
        current = as_utc(now) if now is not None else utcnow()

        owner_expired = self._expire(session, OwnerSubscription, current)
        member_expired = self._expire(session, MemberSubscription, current)
        reminders = self._collect_reminders(session, OwnerSubscription, "OWNER", current)
        reminders += self._collect_reminders(session, MemberSubscription, "MEMBER", current)
        session.commit()

        for subscription_type, subscription_ids in (("OWNER", owner_expired), ("MEMBER", member_expired)):
            for subscription_id in subscription_ids:
                self._publish(
                    "subscription.expired",
                    {"subscription_type": subscription_type, "subscription_id": str(subscription_id)},
                )
        for reminder in reminders:
            self._publish("subscription.expiring", reminder.model_dump(mode="json"))

        observe_subscriptions_expired(len(owner_expired), len(member_expired))
        summary = SweepSummary(
            owner_expired=len(owner_expired),
            member_expired=len(member_expired),
            reminders=len(reminders),
        )
        logger.info("subscription.expired_sweep", extra=summary.model_dump())
        return summary

    @staticmethod
    def _expire(session: Session, model: Any, now: datetime) -> list[uuid.UUID]:
        expired_ids = list(
            session.scalars(
                select(model.id).where(
                    model.end_date < now,
                    model.is_expired.is_(False),
                    model.is_deleted.is_(False),
                )
            )
        )
        if expired_ids:
            session.execute(
                update(model)
                .where(model.id.in_(expired_ids))
                .values(is_expired=True, is_active=False, updated_at=now)
            )
        return expired_ids

    @staticmethod
    def _collect_reminders(session: Session, model: Any, subscription_type: str, now: datetime) -> list[ExpiryReminder]:
        reminder_days = sorted({day for day in get_settings().expiry_reminder_days if day > 0})
        if not reminder_days:
            return []

        horizon = now + timedelta(days=reminder_days[-1] + 1)
        candidates = session.scalars(
            select(model).where(
                model.end_date >= now,
                model.end_date < horizon,
                model.is_active.is_(True),
                model.is_expired.is_(False),
                model.is_deleted.is_(False),
            )
        ).unique()

        reminders: list[ExpiryReminder] = []
        for subscription in candidates:
            days_left = days_until(subscription.end_date, now)
            if days_left not in reminder_days:
                continue
            if subscription.reminder_sent_days is not None and subscription.reminder_sent_days <= days_left:
                continue
            subscription.reminder_sent_days = days_left
            reminders.append(
                ExpiryReminder(subscription_type=subscription_type, subscription_id=subscription.id, days_left=days_left)
            )
        return reminders

    @staticmethod
    def _publish(event_type: str, payload: dict[str, Any]) -> None:
        events.publish(events.build_envelope(event_type, payload))


expiry_sweeper = ExpirySweeper()
