"""Paged read access to past scan summaries.

Read-only: the paginator never touches the session state. Choosing an entry
is done by passing its id to ``ScanSessionController.select_history_entry``.

The total number of rows comes from the service's dedicated count endpoint.
It is never inferred from the length of the page just fetched, which would
undercount whenever a page is full.

Provides:
- HistoryPaginator: fetch_page / total_count / get_page
"""

import asyncio
from typing import Any, Protocol

import structlog

from secure_engine.core.errors import SecureEngineError, ValidationError
from secure_engine.core.models import HistoryPage, ScanHistoryEntry
from secure_engine.core.normalizer import parse_history_entry
from secure_engine.core.scoring import ScoringPolicy

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 10


class HistorySource(Protocol):
    """Subset of ScanServiceClient the paginator depends on."""

    async def get_history(self, limit: int, offset: int) -> list[dict[str, Any]]: ...

    async def get_history_count(self) -> int | None: ...


class HistoryPaginator:
    """Pages through the remote scan history.

    Page boundaries are supplied by the caller as ``offset``/``limit``;
    ``get_page`` is a convenience over page indexes.
    """

    def __init__(
        self,
        source: HistorySource,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        policy: ScoringPolicy | None = None,
    ):
        if page_size < 1:
            raise ValidationError("Page size must be at least 1")
        self.source = source
        self.page_size = page_size
        self.policy = policy
        self.log = logger.bind(component="history")

    async def fetch_page(self, offset: int, limit: int) -> list[ScanHistoryEntry]:
        """Fetch ``limit`` entries starting at ``offset``.

        Raises:
            ValidationError: Negative offset or non-positive limit
        """
        if offset < 0:
            raise ValidationError("Offset must not be negative")
        if limit < 1:
            raise ValidationError("Limit must be at least 1")

        rows = await self.source.get_history(limit=limit, offset=offset)
        entries = [parse_history_entry(row, self.policy) for row in rows[:limit]]
        self.log.debug("history_page_fetched", offset=offset, limit=limit, count=len(entries))
        return entries

    async def total_count(self) -> int | None:
        """Number of history rows reported by the service, if it reports one.

        A failed count request yields None; the rows themselves are still
        usable without it.
        """
        try:
            return await self.source.get_history_count()
        except SecureEngineError as e:
            self.log.warning(
                "history_count_request_failed", error_type=type(e).__name__, error=str(e)
            )
            return None

    async def get_page(self, page_index: int, page_size: int | None = None) -> HistoryPage:
        """Fetch a page by index together with the remote total.

        The page request and the count request run concurrently. When the
        service offers no usable count, the total falls back to the rows
        known to exist so far.
        """
        if page_index < 0:
            raise ValidationError("Page index must not be negative")
        limit = self.page_size if page_size is None else page_size
        if limit < 1:
            raise ValidationError("Page size must be at least 1")
        offset = page_index * limit

        entries, total = await asyncio.gather(
            self.fetch_page(offset, limit),
            self.total_count(),
        )
        if total is None:
            total = offset + len(entries)
            self.log.warning("history_count_unavailable", lower_bound=total)

        return HistoryPage(entries=entries, offset=offset, limit=limit, total_count=total)
