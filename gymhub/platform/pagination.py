from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from gymhub.core.config import get_settings


class ListQuery(BaseModel):
    """Body accepted by every search endpoint.

    Without both ``page`` and ``limit`` and without ``search`` the endpoint runs in
    dropdown mode: the full filtered set, oldest first, with ``pageCount=1``.
    """

    page: int | None = Field(default=None, ge=1)
    limit: int | None = Field(default=None, ge=1, le=1000)
    search: str | None = None

    @property
    def search_term(self) -> str | None:
        if self.search is None:
            return None
        term = self.search.strip()
        return term or None

    @property
    def is_dropdown(self) -> bool:
        has_pagination = self.page is not None and self.limit is not None
        return not has_pagination and self.search_term is None


@dataclass(slots=True)
class PageResult:
    items: list[Any]
    total_count: int
    page_count: int


def paginate(session: Session, query: Select[Any], params: ListQuery, *, created_at: Any) -> PageResult:
    if params.is_dropdown:
        items = list(session.scalars(query.order_by(created_at.asc())).unique().all())
        return PageResult(items=items, total_count=len(items), page_count=1)

    page = params.page or 1
    limit = params.limit or get_settings().default_page_limit
    total = session.scalar(select(func.count()).select_from(query.order_by(None).subquery())) or 0
    paged = query.order_by(created_at.desc()).offset((page - 1) * limit).limit(limit)
    items = list(session.scalars(paged).unique().all())
    return PageResult(items=items, total_count=int(total), page_count=math.ceil(total / limit))
