from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from gymhub import audit
from gymhub.business.accounts.models import User
from gymhub.business.accounts.repository import UserRepository
from gymhub.business.accounts.schemas import ClientCreate, ClientListQuery, ClientRead, ClientSubscriptionSummary
from gymhub.business.subscriptions.models import OwnerSubscription
from gymhub.business.subscriptions.periods import as_utc
from gymhub.business.subscriptions.service import OwnerSubscriptionService, commit_or_rollback
from gymhub.platform.errors import ConflictError, ValidationError
from gymhub.platform.pagination import paginate
from gymhub.platform.schemas import Page
from gymhub.platform.security.context import GYM_OWNER, AuthContext


logger = logging.getLogger("gymhub.accounts")


def email_in_use(session: Session, email: str) -> bool:
    existing = session.scalar(
        select(User.id).where(func.lower(User.email) == email.lower(), User.is_deleted.is_(False)).limit(1)
    )
    return existing is not None


@dataclass(slots=True)
class ClientService:
    user_repository: UserRepository = UserRepository()
    subscription_service: OwnerSubscriptionService = field(default_factory=OwnerSubscriptionService)

    def create_client(self, session: Session, ctx: AuthContext, payload: ClientCreate) -> ClientRead:
        """Create a gym owner and, when a plan is given, their first subscription and payment."""

        self.user_repository.validate_write_security(None, ctx, action="create")
        if (payload.plan_id is None) != (payload.billing_model is None):
            raise ValidationError("plan_id and billing_model must be supplied together")
        if email_in_use(session, payload.email):
            raise ConflictError("User with this email already exists")

        user = User(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=str(payload.email),
            phone_number=payload.phone_number,
            address=payload.address,
            city=payload.city,
            country=payload.country,
            role=GYM_OWNER,
            is_active=True,
            is_deleted=False,
        )
        session.add(user)
        session.flush()

        subscription = None
        if payload.plan_id is not None and payload.billing_model is not None:
            subscription = self.subscription_service.open_subscription(
                session,
                ctx,
                owner_id=user.id,
                plan_id=payload.plan_id,
                billing_model=payload.billing_model,
                start_date=payload.start_date,
                payment=payload if payload.payment_method is not None else None,
            )

        commit_or_rollback(session, "User with this email already exists")
        session.refresh(user)

        audit.record(
            str(ctx.user_id),
            "user",
            str(user.id),
            "client.created",
            None,
            {"email": user.email, "role": user.role, "subscription_id": str(subscription.id) if subscription else None},
            ctx.correlation_id,
        )
        logger.info("client.created", extra={"owner_id": str(user.id)})
        return self._to_read(session, user)

    def list_clients(self, session: Session, ctx: AuthContext, params: ClientListQuery) -> Page[ClientRead]:
        query = select(User).where(User.role == GYM_OWNER, User.is_deleted.is_(False))
        if params.is_active is not None:
            query = query.where(User.is_active.is_(params.is_active))

        term = params.search_term
        if term is not None:
            needle = term.lower()
            query = query.where(
                or_(
                    func.lower(User.first_name).contains(needle, autoescape=True),
                    func.lower(User.last_name).contains(needle, autoescape=True),
                    func.lower(User.email).contains(needle, autoescape=True),
                    User.phone_number.contains(term, autoescape=True),
                )
            )

        result = paginate(session, query, params, created_at=User.created_at)
        return Page[ClientRead](
            data=[self._to_read(session, item) for item in result.items],
            total_count=result.total_count,
            page_count=result.page_count,
        )

    @staticmethod
    def _to_read(session: Session, user: User) -> ClientRead:
        current = session.scalar(
            select(OwnerSubscription)
            .where(OwnerSubscription.owner_id == user.id, OwnerSubscription.is_deleted.is_(False))
            .order_by(OwnerSubscription.is_active.desc(), OwnerSubscription.created_at.desc())
            .limit(1)
        )
        summary = None
        if current is not None:
            summary = ClientSubscriptionSummary(
                id=current.id,
                plan_id=current.plan_id,
                plan_name=current.plan.name if current.plan is not None else None,
                billing_model=current.billing_model,
                start_date=as_utc(current.start_date),
                end_date=as_utc(current.end_date),
                is_active=current.is_active,
                is_expired=current.is_expired,
            )
        read = ClientRead.model_validate(user)
        return read.model_copy(update={"subscription": summary})


client_service = ClientService()
