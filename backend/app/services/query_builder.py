"""Column-aware filter predicates, ordering and paged execution for list endpoints."""

import enum
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Select, and_, false, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement

from app.core.pagination import ParsedListQuery, SortingItem, get_offset

logger = logging.getLogger(__name__)


def _escape_ilike(value: str) -> str:
    """Escape ILIKE metacharacters to prevent wildcard injection."""
    return (
        value
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


class ColumnKind(str, enum.Enum):
    """How a raw filter string is compared against a column."""

    TEXT = "text"        # case-insensitive substring
    BOOLEAN = "boolean"  # "true" -> True, anything else -> False
    EXACT = "exact"      # equality on the value coerced to the column type


def _column_python_type(column: InstrumentedAttribute) -> type | None:
    try:
        return column.property.columns[0].type.python_type
    except (AttributeError, IndexError, NotImplementedError):
        return None


@dataclass(frozen=True)
class ColumnDescriptor:
    column: InstrumentedAttribute
    kind: ColumnKind

    @classmethod
    def for_column(cls, column: InstrumentedAttribute) -> "ColumnDescriptor":
        """Derive the kind from the mapped type: bool, plain str, everything else exact."""
        python_type = _column_python_type(column)
        if python_type is bool:
            return cls(column, ColumnKind.BOOLEAN)
        if python_type is str:
            return cls(column, ColumnKind.TEXT)
        return cls(column, ColumnKind.EXACT)


@dataclass(frozen=True)
class TableSpec:
    """Filterable/sortable columns of one listing, keyed by wire column id."""

    columns: Mapping[str, ColumnDescriptor]
    default_sort: Sequence[SortingItem]
    tie_breaker: InstrumentedAttribute | None = None


def _coerce_exact_value(column: InstrumentedAttribute, value: str) -> Any:
    """Convert the raw string to the column's Python type. Raises ValueError."""
    python_type = _column_python_type(column)
    if python_type is uuid.UUID:
        return uuid.UUID(value.strip())
    if python_type is not None and issubclass(python_type, enum.Enum):
        return python_type(value)
    if python_type is datetime:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    if python_type is int:
        return int(value)
    if python_type is Decimal:
        return Decimal(value)
    return value


def build_filter_condition(value: str, descriptor: ColumnDescriptor) -> ColumnElement | None:
    """Build the predicate for one column, or None for an empty value."""
    if not value:
        return None

    column = descriptor.column
    if descriptor.kind is ColumnKind.TEXT:
        return column.ilike(f"%{_escape_ilike(value)}%", escape="\\")
    if descriptor.kind is ColumnKind.BOOLEAN:
        return column == (value == "true")
    if descriptor.kind is ColumnKind.EXACT:
        try:
            return column == _coerce_exact_value(column, value)
        except (ValueError, InvalidOperation):
            # Not representable in the column's type: nothing can be equal to it.
            return false()
    raise AssertionError(f"Unhandled column kind: {descriptor.kind!r}")


def build_filters_condition(
    filters: Mapping[str, str],
    columns: Mapping[str, ColumnDescriptor],
) -> ColumnElement | None:
    """AND together the predicates of all known columns; unknown ids are skipped."""
    conditions = []
    for column_id, value in filters.items():
        descriptor = columns.get(column_id)
        if descriptor is None:
            continue
        condition = build_filter_condition(value, descriptor)
        if condition is not None:
            conditions.append(condition)

    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return and_(*conditions)


def build_order_by(sorting: Sequence[SortingItem], table: TableSpec) -> list[ColumnElement]:
    """ORDER BY in request order; falls back to the table default when nothing is sortable.

    Unknown ids are dropped outright, so ``sort=bogus,name`` orders by ``name``
    alone. No ``createdAt`` clause is put in the unknown id's slot.
    """
    clauses = []
    for item in sorting:
        descriptor = table.columns.get(item.id)
        if descriptor is None:
            continue
        clauses.append(descriptor.column.desc() if item.desc else descriptor.column.asc())

    if not clauses:
        for item in table.default_sort:
            column = table.columns[item.id].column
            clauses.append(column.desc() if item.desc else column.asc())

    if table.tie_breaker is not None:
        clauses.append(table.tie_breaker.asc())
    return clauses


class ListingService:
    """Runs the count query and the bounded page query for a parsed list request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_page(
        self,
        query: Select,
        table: TableSpec,
        params: ParsedListQuery,
    ) -> tuple[list[Any], int]:
        """Returns (rows, total) for the requested page.

        The two reads are not in one snapshot; under concurrent writes the
        total may disagree with the rows returned.
        """
        where_clause = build_filters_condition(params.filters, table.columns)
        if where_clause is not None:
            query = query.where(where_clause)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        total = count_result.scalar_one()

        page = params.pagination
        query = (
            query.order_by(*build_order_by(params.sorting, table))
            .offset(get_offset(page.page, page.limit))
            .limit(page.limit)
        )
        result = await self.db.execute(query)
        rows = list(result.scalars().all())

        logger.debug(
            "Listed %d of %d rows (page=%d, limit=%d, filters=%s)",
            len(rows), total, page.page, page.limit, sorted(params.filters),
        )
        return rows, total
