"""Paged access to past scans."""

from .paginator import HistoryPaginator

__all__ = ["HistoryPaginator"]
