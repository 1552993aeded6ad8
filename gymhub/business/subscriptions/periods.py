from __future__ import annotations

import calendar
import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Literal

from gymhub.business.plans.models import Plan


BillingModel = Literal["MONTHLY", "YEARLY"]
BILLING_MODELS: tuple[str, ...] = ("MONTHLY", "YEARLY")

_SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + (month_index // 12)
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_end_date(start_date: datetime, billing_model: str) -> datetime:
    if billing_model == "MONTHLY":
        return add_months(start_date, 1)
    if billing_model == "YEARLY":
        return add_months(start_date, 12)
    raise ValueError(f"unsupported billing model: {billing_model}")


def calculate_end_date_with_remaining_days(start_date: datetime, billing_model: str, remaining_days: int = 0) -> datetime:
    end_date = calculate_end_date(start_date, billing_model)
    if remaining_days > 0:
        end_date = end_date + timedelta(days=remaining_days)
    return end_date


def calculate_remaining_days_from_end_date(end_date: datetime, now: datetime | None = None) -> int:
    current = as_utc(now) if now is not None else utcnow()
    seconds = (as_utc(end_date) - current).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / _SECONDS_PER_DAY)


def get_plan_price(plan: Plan, billing_model: str) -> Decimal:
    if billing_model == "YEARLY":
        return Decimal(plan.yearly_price)
    return Decimal(plan.monthly_price)
