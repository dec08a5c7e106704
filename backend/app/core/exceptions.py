"""Domain exceptions translated to HTTP responses by app.core.error_handlers."""

from typing import Any


class QueryValidationError(ValueError):
    """Malformed list-query input (page, limit). Maps to HTTP 400."""

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundError(LookupError):
    """A referenced row does not exist. Maps to HTTP 404."""

    def __init__(self, entity: str, entity_id: Any = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found.")
