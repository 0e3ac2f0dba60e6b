import math
from typing import Optional, Type

from sqlmodel import Session, SQLModel, func, select

from app.models.common import Page


MAX_PAGE_SIZE = 100


def paginate(
    session: Session,
    query,
    page: int = 1,
    limit: int = 10,
    read_model: Optional[Type[SQLModel]] = None,
) -> Page:
    """
    Runs `query` for one page and counts the full result set.

    `limit` is clamped to MAX_PAGE_SIZE. When `read_model` is given each row
    is converted with `model_validate`.
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    total = session.exec(
        select(func.count()).select_from(query.order_by(None).subquery())
    ).one()

    rows = session.exec(query.offset((page - 1) * limit).limit(limit)).all()
    items = [read_model.model_validate(r) for r in rows] if read_model else list(rows)

    return Page(
        items=items,
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total else 0,
    )
