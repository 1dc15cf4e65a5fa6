"""Shared base model and pagination records."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class DeepSourceModel(BaseModel):
    """Base for API records.

    Attributes are snake_case in Python and camelCase on the wire; both
    spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, as sent to tool callers."""
        return self.model_dump(by_alias=True, mode="json")


class PageInfo(DeepSourceModel):
    """Relay cursor information for one page."""

    has_next_page: bool = False
    has_previous_page: bool = False
    start_cursor: str | None = None
    end_cursor: str | None = None


class PaginatedResponse(DeepSourceModel, Generic[T]):
    """A page of items plus cursor information."""

    items: list[T] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
    total_count: int = 0

    @classmethod
    def empty(cls) -> PaginatedResponse[T]:
        return cls()
