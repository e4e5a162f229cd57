"""Scan service HTTP client."""

from .service import ScanServiceClient, extract_detail

__all__ = ["ScanServiceClient", "extract_detail"]
