"""
Pagination and sorting for list endpoints.

Query parameters: page, limit, sortBy, order. With no page/limit the whole
result set is returned. `limit` alone means page 1.
"""
from dataclasses import dataclass
from typing import Dict, Literal, Optional

from fastapi import Query
from sqlalchemy.orm import Query as SAQuery

from core.exceptions import ValidationError

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ListParams:
    page: Optional[int] = None
    limit: Optional[int] = None
    sort_by: Optional[str] = None
    order: str = "desc"

    @property
    def is_paginated(self) -> bool:
        return self.limit is not None

    @property
    def offset(self) -> int:
        return ((self.page or 1) - 1) * (self.limit or 0)

    def variant(self, default_sort: str) -> str:
        """Stable cache sub-key for this combination of parameters."""
        page = (self.page or 1) if self.is_paginated else "all"
        limit = self.limit if self.is_paginated else "all"
        return f"page={page}|limit={limit}|sort={self.sort_by or default_sort}|order={self.order}"

    def apply(self, query: SAQuery, sortable: Dict[str, object], default_sort: str, tiebreak) -> SAQuery:
        """Order (with an id tiebreak so pages are disjoint) and slice the query."""
        field = self.sort_by or default_sort
        column = sortable.get(field)
        if column is None:
            allowed = ", ".join(sorted(sortable))
            raise ValidationError(f"Cannot sort by '{field}'. Allowed: {allowed}", field="sortBy")

        if self.order == "asc":
            query = query.order_by(column.asc(), tiebreak.asc())
        else:
            query = query.order_by(column.desc(), tiebreak.desc())

        if self.is_paginated:
            query = query.offset(self.offset).limit(self.limit)
        return query


def list_params(
    page: Optional[int] = Query(None, ge=1, description="Page number (1-based)"),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Field to sort by"),
    order: Literal["asc", "desc"] = Query("desc", description="Sort direction"),
) -> ListParams:
    """FastAPI dependency for list query parameters."""
    return ListParams(page=page, limit=limit, sort_by=sort_by, order=order)
