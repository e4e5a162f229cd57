"""Client-side scan session state machine."""

from .controller import ScanSessionController

__all__ = ["ScanSessionController"]
