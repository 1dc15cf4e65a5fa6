"""Relay-style pagination helpers.

DeepSource connections accept ``first``/``after`` for forward paging and
``last``/``before`` for backward paging. Tool callers may also pass
``page_size`` (alias for ``first``) and ``max_pages`` (fetch several pages
and merge them).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from deepsource_mcp.core.constants import DEFAULT_PAGE_SIZE
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger
from deepsource_mcp.models import PageInfo, PaginatedResponse

T = TypeVar("T")

_logger = get_logger("pagination")


class PaginationParams(BaseModel):
    """Pagination arguments as accepted from tool callers."""

    model_config = ConfigDict(populate_by_name=True)

    first: int | None = Field(default=None, description="Number of items to return (forward)")
    after: str | None = Field(default=None, description="Cursor to start after (forward)")
    last: int | None = Field(default=None, description="Number of items to return (backward)")
    before: str | None = Field(default=None, description="Cursor to end before (backward)")
    page_size: int | None = Field(default=None, description="Alias for 'first'")
    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Fetch up to this many pages and merge the results",
    )

    def to_variables(self) -> dict[str, Any]:
        """GraphQL variables for the cursor arguments that are set."""
        return {
            name: value
            for name, value in (
                ("first", self.first),
                ("after", self.after),
                ("last", self.last),
                ("before", self.before),
            )
            if value is not None
        }


def normalize_pagination(
    params: PaginationParams | None,
    *,
    logger: DeepSourceLogger | None = None,
) -> PaginationParams:
    """Apply Relay rules to raw pagination arguments.

    - ``page_size`` fills in for a missing ``first``
    - ``first`` and ``last`` are clamped to at least 1
    - ``before`` wins: ``last`` defaults to ``first`` or 10, ``first``/``after`` are dropped
    - ``after`` makes ``first`` default to 10
    - ``last`` without ``before`` is kept, with a warning
    - otherwise ``first`` defaults to 10

    ``max_pages`` is carried through unchanged.
    """
    log = logger or _logger
    raw = params or PaginationParams()

    first = raw.first if raw.first is not None else raw.page_size
    last = raw.last
    if first is not None:
        first = max(1, int(first))
    if last is not None:
        last = max(1, int(last))
    after = raw.after or None
    before = raw.before or None

    if before:
        return PaginationParams(
            last=last or first or DEFAULT_PAGE_SIZE,
            before=before,
            max_pages=raw.max_pages,
        )

    if after:
        return PaginationParams(
            first=first or DEFAULT_PAGE_SIZE,
            after=after,
            max_pages=raw.max_pages,
        )

    if last is not None:
        log.warning(
            "pagination_last_without_before",
            last=last,
            hint="Relay pagination expects 'last' together with a 'before' cursor",
        )
        return PaginationParams(last=last, max_pages=raw.max_pages)

    return PaginationParams(first=first or DEFAULT_PAGE_SIZE, max_pages=raw.max_pages)


PageFetcher = Callable[[PaginationParams], Awaitable[PaginatedResponse[T]]]


@dataclass
class MultiPageResult(Generic[T]):
    """Merged outcome of a multi-page fetch."""

    items: list[T] = field(default_factory=list)
    pages_fetched: int = 0
    has_more: bool = False
    last_cursor: str | None = None
    total_count: int | None = None


async def fetch_pages(
    fetcher: PageFetcher[T],
    max_pages: int,
    page_size: int = DEFAULT_PAGE_SIZE,
    *,
    logger: DeepSourceLogger | None = None,
) -> MultiPageResult[T]:
    """Follow ``end_cursor`` until there are no more pages or ``max_pages`` is hit."""
    log = logger or _logger
    result: MultiPageResult[T] = MultiPageResult()
    cursor: str | None = None

    while result.pages_fetched < max_pages:
        page = await fetcher(PaginationParams(first=page_size, after=cursor))
        result.items.extend(page.items)
        result.pages_fetched += 1
        result.total_count = page.total_count
        result.has_more = page.page_info.has_next_page
        cursor = page.page_info.end_cursor
        result.last_cursor = cursor

        log.debug(
            "page_fetched",
            page_number=result.pages_fetched,
            items_in_page=len(page.items),
            total_items=len(result.items),
            has_more=result.has_more,
        )

        # A missing cursor would refetch the first page forever
        if not result.has_more or cursor is None:
            break

    if result.has_more and result.pages_fetched >= max_pages:
        log.info("max_pages_reached", max_pages=max_pages, total_items=len(result.items))

    return result


async def fetch_with_pagination(
    fetcher: PageFetcher[T],
    params: PaginationParams | None,
    *,
    logger: DeepSourceLogger | None = None,
) -> tuple[PaginatedResponse[T], int]:
    """Fetch one page, or several when ``max_pages`` is set.

    Returns:
        The (possibly merged) page and the number of pages fetched.
    """
    normalized = normalize_pagination(params, logger=logger)

    if normalized.max_pages is None or normalized.before is not None or normalized.last is not None:
        return await fetcher(normalized), 1

    page_size = normalized.first or DEFAULT_PAGE_SIZE

    async def _page(page_params: PaginationParams) -> PaginatedResponse[T]:
        after = page_params.after if page_params.after is not None else normalized.after
        return await fetcher(PaginationParams(first=page_params.first, after=after))

    merged = await fetch_pages(_page, normalized.max_pages, page_size, logger=logger)
    response: PaginatedResponse[T] = PaginatedResponse(
        items=merged.items,
        page_info=PageInfo(
            has_next_page=merged.has_more,
            has_previous_page=False,
            end_cursor=merged.last_cursor,
        ),
        total_count=merged.total_count or len(merged.items),
    )
    return response, merged.pages_fetched


def pagination_metadata(
    response: PaginatedResponse[Any],
    pages_fetched: int = 1,
    max_pages: int | None = None,
) -> dict[str, Any]:
    """Summary block that tells the caller how to continue paging."""
    page_info = response.page_info
    metadata: dict[str, Any] = {
        "has_more_pages": page_info.has_next_page,
        "page_size": len(response.items),
    }
    if page_info.end_cursor:
        metadata["next_cursor"] = page_info.end_cursor
    if page_info.start_cursor:
        metadata["previous_cursor"] = page_info.start_cursor
    if response.total_count > 0:
        metadata["total_count"] = response.total_count
    if pages_fetched > 1:
        metadata["pages_fetched"] = pages_fetched
    if max_pages is not None and pages_fetched >= max_pages and page_info.has_next_page:
        metadata["limit_reached"] = True
    return metadata
