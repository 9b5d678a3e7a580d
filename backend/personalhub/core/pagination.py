# backend/personalhub/core/pagination.py
import math
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Query

from personalhub.core.exceptions import ValidationError

T = TypeVar("T")

MAX_PAGE_SIZE = 100


class Page(BaseModel, Generic[T]):
    content: List[T]
    page: int
    size: int
    total_elements: int
    total_pages: int


def apply_sort(query: Query, model, sort: Optional[str], allowed: Sequence[str], default: str) -> Query:
    """
    ``sort`` uses the ``field,direction`` form, e.g. ``created_at,desc``.
    Only whitelisted columns can be sorted on.
    """
    field, _, direction = (sort or default).partition(",")
    field = field.strip()
    direction = (direction or "asc").strip().lower()
    if field not in allowed:
        raise ValidationError(f"Cannot sort by '{field}'")
    if direction not in ("asc", "desc"):
        raise ValidationError(f"Invalid sort direction '{direction}'")
    column = getattr(model, field)
    return query.order_by(column.desc() if direction == "desc" else column.asc(), model.id)


def paginate(query: Query, page: int, size: int) -> dict:
    if page < 0:
        raise ValidationError("page must be >= 0")
    if not 1 <= size <= MAX_PAGE_SIZE:
        raise ValidationError(f"size must be between 1 and {MAX_PAGE_SIZE}")
    total = query.order_by(None).count()
    items = query.offset(page * size).limit(size).all()
    return {
        "content": items,
        "page": page,
        "size": size,
        "total_elements": total,
        "total_pages": math.ceil(total / size) if total else 0,
    }
