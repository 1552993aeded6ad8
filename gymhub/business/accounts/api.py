from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gymhub.business.accounts.schemas import ClientCreate, ClientListQuery, ClientRead
from gymhub.business.accounts.service import client_service
from gymhub.core.database import get_db
from gymhub.core.rbac import require_roles
from gymhub.platform.schemas import Envelope, Page, envelope
from gymhub.platform.security.context import SUPER_ADMIN, AuthContext


router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=Envelope[ClientRead], status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN)),
) -> Envelope[ClientRead]:
    return envelope("Client created successfully", client_service.create_client(db, ctx, payload))


@router.post("/search", response_model=Page[ClientRead])
def list_clients(
    params: ClientListQuery,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_roles(SUPER_ADMIN)),
) -> Page[ClientRead]:
    return client_service.list_clients(db, ctx, params)
