"""List query parsing and paginated response assembly.

Wire format for every list endpoint:

    GET /resource?page=2&limit=10&sort=name,-createdAt&role=admin

``page``/``limit``/``sort`` are reserved; every other key is a filter on the
column with that id. The response body is ``{"data": [...], "pagination": {...}}``.
"""

import math
from collections.abc import Mapping, Sequence
from typing import TypeVar

from pydantic import BaseModel, Field, ValidationError

from app.core.exceptions import QueryValidationError
from app.schemas import PaginatedResult, PaginationMeta

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

RESERVED_PARAMS = frozenset({"page", "limit", "sort"})


class PaginationParams(BaseModel):
    page: int = Field(DEFAULT_PAGE, ge=1)
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)


class SortingItem(BaseModel):
    id: str
    desc: bool = False


class ParsedListQuery(BaseModel):
    pagination: PaginationParams
    sorting: list[SortingItem] = []
    filters: dict[str, str] = {}


def parse_sort(sort: str | None) -> list[SortingItem]:
    """Split ``name,-createdAt`` into ordered sort items; ``-`` means descending."""
    if not sort:
        return []
    items: list[SortingItem] = []
    for token in sort.split(","):
        token = token.strip()
        desc = token.startswith("-")
        column_id = token[1:] if desc else token
        if not column_id:
            continue
        items.append(SortingItem(id=column_id, desc=desc))
    return items


def parse_query_params(query: Mapping[str, str | None]) -> ParsedListQuery:
    """Normalize raw query params into pagination, sorting and filters.

    Raises QueryValidationError when page/limit are not integers within bounds.
    """
    raw_pagination = {
        key: query[key]
        for key in ("page", "limit")
        if query.get(key) not in (None, "")
    }
    try:
        pagination = PaginationParams.model_validate(raw_pagination)
    except ValidationError as exc:
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type", "value_error"),
            }
            for err in exc.errors()
        ]
        raise QueryValidationError("Invalid pagination parameters.", details) from exc

    filters = {
        key: value
        for key, value in query.items()
        if key not in RESERVED_PARAMS and value
    }

    return ParsedListQuery(
        pagination=pagination,
        sorting=parse_sort(query.get("sort")),
        filters=filters,
    )


def get_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def create_paginated_response(
    data: Sequence[T],
    total: int,
    params: PaginationParams,
) -> PaginatedResult[T]:
    """Wrap one page of rows with its page metadata. Pure."""
    total_pages = math.ceil(total / params.limit)
    return PaginatedResult(
        data=list(data),
        pagination=PaginationMeta(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        ),
    )
