"""Python client for the course platform API."""

from app.client.http import ApiClient, AuthenticationRequired, RefreshState, TokenRefreshCoordinator, TokenStore
from app.client.parsers import FiltersStateParser, FilterItem, SortingItem, SortingStateParser
from app.client.services import AuthApi, CoursesService, UsersService
from app.client.table_state import DataTableState, FilterDef, FilterOption, ListQuery

__all__ = [
    "ApiClient",
    "AuthApi",
    "AuthenticationRequired",
    "CoursesService",
    "DataTableState",
    "FilterDef",
    "FilterItem",
    "FilterOption",
    "FiltersStateParser",
    "ListQuery",
    "RefreshState",
    "SortingItem",
    "SortingStateParser",
    "TokenRefreshCoordinator",
    "TokenStore",
    "UsersService",
]
