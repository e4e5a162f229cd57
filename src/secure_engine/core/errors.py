"""Error taxonomy for the scan client core.

Provides:
- SecureEngineError: Base class for every error raised by this package
- TransportError: Request failed before a response was obtained
- EngineError: Scan service answered with a non-2xx status
- ValidationError: Caller supplied an empty file, URL or scan id
- DataShapeError: Response JSON is missing or mistyping a field
- InvalidTransitionError: Session transition not allowed from current phase
"""


class SecureEngineError(Exception):
    """Base class for scan client errors."""


class TransportError(SecureEngineError):
    """Network failure or timeout before any response was received."""


class EngineError(SecureEngineError):
    """Non-2xx response from the scan service.

    Attributes:
        status: HTTP status code returned by the service
        detail: Engine-provided message (from the ``detail`` field), if any
    """

    def __init__(self, status: int, detail: str | None = None):
        self.status = status
        self.detail = detail
        message = detail or f"Scan service returned HTTP {status}"
        super().__init__(message)


class ValidationError(SecureEngineError):
    """Caller input rejected locally, before any network call."""


class DataShapeError(SecureEngineError):
    """Response payload does not have the expected shape.

    Raised only by the normalizer's field helpers and absorbed there by
    falling back to defaults. It never reaches session callers.
    """


class InvalidTransitionError(SecureEngineError):
    """Session transition is not permitted from the current phase."""

    def __init__(self, action: str, phase: str):
        self.action = action
        self.phase = phase
        super().__init__(f"Cannot {action} while session is {phase}")
