"""Fail-closed parsers for filter and sorting state carried in shareable URLs.

A malformed or foreign value never raises: ``parse`` returns ``None`` and the
caller treats the state as empty, so a bad bookmark still opens the page.
"""

from collections.abc import Iterable, Sequence
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

FILTER_VARIANTS = (
    "text",
    "number",
    "range",
    "date",
    "dateRange",
    "boolean",
    "select",
    "multiSelect",
)

OPERATORS = (
    "iLike",
    "notILike",
    "eq",
    "ne",
    "inArray",
    "notInArray",
    "lt",
    "lte",
    "gt",
    "gte",
    "isBetween",
    "isEmpty",
    "isNotEmpty",
    "isRelativeToToday",
)

FilterVariant = Literal[
    "text", "number", "range", "date", "dateRange", "boolean", "select", "multiSelect",
]
FilterOperator = Literal[
    "iLike", "notILike", "eq", "ne", "inArray", "notInArray", "lt", "lte",
    "gt", "gte", "isBetween", "isEmpty", "isNotEmpty", "isRelativeToToday",
]


class _StateItem(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)


class SortingItem(_StateItem):
    id: str
    desc: bool


class FilterItem(_StateItem):
    id: str
    value: str | list[str]
    variant: FilterVariant
    operator: FilterOperator
    filter_id: str = Field(alias="filterId")


ItemT = TypeVar("ItemT", SortingItem, FilterItem)


class _StateParser(Generic[ItemT]):
    item_type: type

    def __init__(self, column_ids: Iterable[str] | None = None):
        self.valid_keys = frozenset(column_ids) if column_ids is not None else None
        self._adapter = TypeAdapter(list[self.item_type])

    def parse(self, value: str) -> list[ItemT] | None:
        try:
            items = self._adapter.validate_json(value)
        except ValidationError:
            return None
        if self.valid_keys is not None and any(item.id not in self.valid_keys for item in items):
            return None
        return items

    def serialize(self, items: Sequence[ItemT]) -> str:
        return self._adapter.dump_json(list(items), by_alias=True).decode()


class SortingStateParser(_StateParser[SortingItem]):
    item_type = SortingItem

    @staticmethod
    def eq(a: Sequence[SortingItem], b: Sequence[SortingItem]) -> bool:
        """Positional, order-sensitive comparison of (id, desc)."""
        return len(a) == len(b) and all(
            x.id == y.id and x.desc == y.desc for x, y in zip(a, b)
        )


class FiltersStateParser(_StateParser[FilterItem]):
    item_type = FilterItem

    @staticmethod
    def eq(a: Sequence[FilterItem], b: Sequence[FilterItem]) -> bool:
        """Positional comparison of id, variant, operator and value.

        ``filterId`` is not compared: it names the UI row, not the predicate.
        """
        if len(a) != len(b):
            return False
        return all(
            x.id == y.id
            and x.variant == y.variant
            and x.operator == y.operator
            and _values_equal(x.value, y.value)
            for x, y in zip(a, b)
        )


def _values_equal(a: str | list[str], b: str | list[str]) -> bool:
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(x == y for x, y in zip(a, b))
    return a == b
