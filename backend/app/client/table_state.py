"""Pagination, sorting and filter state for one server-driven table.

Filters have two layers: *pending* values edited locally and *committed*
values that drive requests and are mirrored into the page URL. Only
``apply_filters`` moves pending values into committed state.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx

from app.client.parsers import SortingItem, SortingStateParser
from app.core.pagination import MAX_LIMIT

logger = logging.getLogger(__name__)

# "" and None come from an emptied input; " " is the select "all" option.
CLEAR_SENTINELS = ("", " ", None)


@dataclass(frozen=True)
class FilterOption:
    label: str
    value: str


@dataclass(frozen=True)
class FilterDef:
    id: str
    label: str
    type: Literal["text", "select"]
    placeholder: str | None = None
    options: tuple[FilterOption, ...] = ()


@dataclass(frozen=True)
class ListQuery:
    page: int
    limit: int
    sorting: tuple[SortingItem, ...] = ()
    filters: Mapping[str, str] = field(default_factory=dict)

    def to_params(self) -> dict[str, str]:
        """Wire form: ``page``, ``limit``, ``sort=name,-createdAt`` and one key per filter."""
        params = {"page": str(self.page), "limit": str(self.limit)}
        if self.sorting:
            params["sort"] = ",".join(
                f"-{item.id}" if item.desc else item.id for item in self.sorting
            )
        params.update(self.filters)
        return params


class DataTableState:
    """Owns the table's query state and issues one commit per state change.

    ``on_commit`` receives the new ``ListQuery``; its return value (a
    coroutine for async fetchers) is handed back to the caller of the setter.

    When ``sort_columns`` is given, sorting is also mirrored into the URL as a
    JSON ``sort`` param and restored from it, ignoring values that reference
    other columns.
    """

    def __init__(
        self,
        filters: Iterable[FilterDef],
        on_commit: Callable[[ListQuery], Any],
        url: str | httpx.URL = "/",
        page_size: int = 10,
        reset_page_on_filter_change: bool = False,
        sort_columns: Sequence[str] | None = None,
    ):
        self.filter_defs = tuple(filters)
        self._filter_ids = frozenset(f.id for f in self.filter_defs)
        self._on_commit = on_commit
        self.reset_page_on_filter_change = reset_page_on_filter_change
        self._sort_parser = SortingStateParser(sort_columns) if sort_columns is not None else None

        self.page = 1
        self.limit = page_size
        self.sorting: tuple[SortingItem, ...] = ()
        self._filters: dict[str, str] = {}
        self._pending: dict[str, str | None] = {}
        self._url = httpx.URL(url)
        self._restore_from_url()

    # --- Read-only views ---

    @property
    def url(self) -> httpx.URL:
        return self._url

    @property
    def filters(self) -> dict[str, str]:
        return dict(self._filters)

    @property
    def pending_filters(self) -> dict[str, str | None]:
        return dict(self._pending)

    def filter_value(self, filter_id: str) -> str:
        """Value shown in the filter input: pending edit, else committed, else empty."""
        if filter_id in self._pending:
            return self._pending[filter_id] or ""
        return self._filters.get(filter_id, "")

    def query(self) -> ListQuery:
        return ListQuery(
            page=self.page,
            limit=self.limit,
            sorting=self.sorting,
            filters=dict(self._filters),
        )

    # --- Mutations ---

    def set_pending_filter(self, filter_id: str, value: str | None) -> None:
        """Local edit only; nothing is requested until ``apply_filters``."""
        if filter_id not in self._filter_ids:
            raise KeyError(f"Unknown filter: {filter_id}")
        self._pending[filter_id] = value

    def apply_filters(self) -> Any:
        if not self._pending:
            return None

        url = self._url
        for filter_id, value in self._pending.items():
            if value in CLEAR_SENTINELS:
                self._filters.pop(filter_id, None)
                url = url.copy_remove_param(filter_id)
            else:
                self._filters[filter_id] = value
                url = url.copy_set_param(filter_id, value)
        self._url = url
        self._pending.clear()

        if self.reset_page_on_filter_change:
            self.page = 1
        return self._commit()

    def clear_filters(self) -> Any:
        self._filters.clear()
        self._pending.clear()
        url = self._url
        for filter_id in self._filter_ids:
            url = url.copy_remove_param(filter_id)
        self._url = url

        if self.reset_page_on_filter_change:
            self.page = 1
        return self._commit()

    def set_sorting(self, sorting: Sequence[SortingItem]) -> Any:
        self.sorting = tuple(sorting)
        if self._sort_parser is not None:
            if self.sorting:
                self._url = self._url.copy_set_param("sort", self._sort_parser.serialize(self.sorting))
            else:
                self._url = self._url.copy_remove_param("sort")

        if self.reset_page_on_filter_change:
            self.page = 1
        return self._commit()

    def set_page(self, page: int) -> Any:
        if page < 1:
            raise ValueError("page must be >= 1")
        self.page = page
        return self._commit()

    def set_page_size(self, limit: int) -> Any:
        if limit < 1 or limit > MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")
        self.limit = limit
        return self._commit()

    # --- Internals ---

    def _restore_from_url(self) -> None:
        for filter_id in self._filter_ids:
            value = self._url.params.get(filter_id)
            if value not in CLEAR_SENTINELS:
                self._filters[filter_id] = value

        if self._sort_parser is not None and "sort" in self._url.params:
            sorting = self._sort_parser.parse(self._url.params["sort"])
            if sorting is None:
                logger.debug("Ignoring unparseable sort state in %s", self._url)
            else:
                self.sorting = tuple(sorting)

    def _commit(self) -> Any:
        query = self.query()
        logger.debug("Committing table query %s", query.to_params())
        return self._on_commit(query)
