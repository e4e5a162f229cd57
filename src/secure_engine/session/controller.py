"""Scan session state machine.

Owns the single SessionState of a client session: the selected file, the
active scan kind, the loading flag, the last error and the one result slot
that is presented.

Phases and transitions (initial phase IDLE):

    IDLE/any       --select_file-------------> FILE_SELECTED
    FILE_SELECTED  --start_sast_scan---------> SCANNING -> RESULT_READY | ERROR
    ERROR          --start_sast_scan (retry)-> SCANNING   (pending file kept)
    any - SCANNING --start_dast_scan---------> SCANNING -> RESULT_READY | ERROR
    RESULT_READY   --open_viewer-------------> VIEWING
    any            --close-------------------> IDLE       (result slot cleared)
    any - SCANNING --select_history_entry----> VIEWING | ERROR

Every transition that issues a request or resets the session bumps a
generation counter. A response is applied only if its generation is still
current, so a late answer can never revive a closed session or overwrite a
newer result.

Provides:
- ScanSessionController: Transition functions over SessionState
"""

from collections.abc import Callable
from typing import Protocol

import structlog

from secure_engine.core.errors import (
    EngineError,
    InvalidTransitionError,
    SecureEngineError,
    ValidationError,
)
from secure_engine.core.models import (
    PendingFile,
    ScanKind,
    ScanResult,
    SessionPhase,
    SessionState,
)
from secure_engine.core.normalizer import parse_scan_result
from secure_engine.core.scoring import ScoringPolicy

logger = structlog.get_logger()

GENERIC_ERRORS = {
    "sast": "Failed to upload and scan file. Please try again.",
    "dast": "DAST scan failed. Please check the target URL and try again.",
    "history": "Failed to load scan details. Please try again.",
}

StateListener = Callable[[SessionState], None]


class ScanService(Protocol):
    """Subset of ScanServiceClient the controller depends on."""

    async def upload_file(self, file: PendingFile) -> dict: ...

    async def run_dast(self, target_url: str) -> dict: ...

    async def get_scan(self, scan_id: str) -> dict: ...


class ScanSessionController:
    """Single-writer owner of the scan session state.

    All transitions run on one event loop. Synchronous transitions apply
    immediately; the three network transitions suspend only while awaiting
    the scan service and re-check their generation before applying the
    response.
    """

    def __init__(self, client: ScanService, *, policy: ScoringPolicy | None = None):
        """Initialize controller in the IDLE phase.

        Args:
            client: Scan service client (see ScanServiceClient)
            policy: Scoring weights used when a payload has no score
        """
        self.client = client
        self.policy = policy
        self._state = SessionState()
        self._generation = 0
        self._listeners: list[StateListener] = []
        self.log = logger.bind(component="scan_session")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked with every new state."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _swap(self, new_state: SessionState, generation: int | None = None) -> bool:
        """Install ``new_state`` if ``generation`` is still current.

        Returns:
            True if applied, False if the caller's request went stale
        """
        if generation is not None and generation != self._generation:
            self.log.info(
                "stale_response_dropped",
                request_generation=generation,
                current_generation=self._generation,
            )
            return False

        previous = self._state
        self._state = new_state
        if previous.phase != new_state.phase:
            self.log.info(
                "session_transition",
                from_phase=previous.phase.value,
                to_phase=new_state.phase.value,
            )
        for listener in list(self._listeners):
            listener(new_state)
        return True

    def _fail(self, generation: int, error: Exception, operation: str) -> None:
        if isinstance(error, EngineError) and error.detail:
            message = error.detail
        else:
            message = GENERIC_ERRORS[operation]
        self.log.warning(
            "scan_operation_failed",
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )
        self._swap(
            self._state.evolve(phase=SessionPhase.ERROR, last_error=message, loading=False),
            generation,
        )

    # Transitions

    def select_file(self, file: PendingFile) -> SessionState:
        """Choose a file for SAST upload, discarding any previous result.

        Raises:
            ValidationError: File has no name or no content
        """
        if not file.filename or not file.content:
            raise ValidationError("Please select a non-empty file")

        self._next_generation()
        self._swap(SessionState(phase=SessionPhase.FILE_SELECTED, pending_file=file))
        return self._state

    async def start_sast_scan(self) -> SessionState:
        """Upload the pending file and wait for the SAST result.

        Allowed from FILE_SELECTED, and from ERROR while a file is still
        pending (retry).

        Raises:
            InvalidTransitionError: A scan is in flight or phase disallows it
            ValidationError: No file has been selected
        """
        state = self._state
        if state.phase == SessionPhase.SCANNING:
            raise InvalidTransitionError("start a SAST scan", state.phase.value)
        if state.pending_file is None:
            raise ValidationError("No file selected")
        if state.phase not in (SessionPhase.FILE_SELECTED, SessionPhase.ERROR):
            raise InvalidTransitionError("start a SAST scan", state.phase.value)

        file = state.pending_file
        generation = self._next_generation()
        self._swap(
            state.evolve(
                phase=SessionPhase.SCANNING,
                active_scan_kind=ScanKind.SAST,
                target_url=None,
                current_result=None,
                last_error=None,
                loading=True,
            )
        )
        log = self.log.bind(kind="SAST", filename=file.filename, generation=generation)
        log.info("scan_started", size=len(file.content))

        try:
            payload = await self.client.upload_file(file)
            result = parse_scan_result(
                payload, ScanKind.SAST, target=file.filename, policy=self.policy
            )
        except SecureEngineError as e:
            self._fail(generation, e, "sast")
            return self._state
        except Exception as e:
            log.exception("scan_unexpected_error")
            self._fail(generation, e, "sast")
            return self._state

        if self._complete(result, generation):
            log.info("scan_completed", scan_id=result.scan_id, score=result.security_score)
        return self._state

    async def start_dast_scan(self, target_url: str) -> SessionState:
        """Run a DAST scan against ``target_url`` and wait for the result.

        Raises:
            ValidationError: Empty target URL (no request is sent)
            InvalidTransitionError: A scan is already in flight
        """
        if not isinstance(target_url, str) or not target_url.strip():
            raise ValidationError("Please enter a target URL")
        state = self._state
        if state.phase == SessionPhase.SCANNING:
            raise InvalidTransitionError("start a DAST scan", state.phase.value)

        target_url = target_url.strip()
        generation = self._next_generation()
        self._swap(
            state.evolve(
                phase=SessionPhase.SCANNING,
                active_scan_kind=ScanKind.DAST,
                target_url=target_url,
                current_result=None,
                last_error=None,
                loading=True,
            )
        )
        log = self.log.bind(kind="DAST", target_url=target_url, generation=generation)
        log.info("scan_started")

        try:
            payload = await self.client.run_dast(target_url)
            result = parse_scan_result(
                payload, ScanKind.DAST, target=target_url, policy=self.policy
            )
        except SecureEngineError as e:
            self._fail(generation, e, "dast")
            return self._state
        except Exception as e:
            log.exception("scan_unexpected_error")
            self._fail(generation, e, "dast")
            return self._state

        if self._complete(result, generation):
            log.info("scan_completed", scan_id=result.scan_id, score=result.security_score)
        return self._state

    def _complete(self, result: ScanResult, generation: int) -> bool:
        return self._swap(
            self._state.evolve(
                phase=SessionPhase.RESULT_READY,
                current_result=result,
                last_error=None,
                loading=False,
            ),
            generation,
        )

    def open_viewer(self) -> SessionState:
        """Show the ready result. No data changes.

        Raises:
            InvalidTransitionError: No result is ready
        """
        state = self._state
        if state.phase == SessionPhase.VIEWING:
            return state
        if state.phase != SessionPhase.RESULT_READY:
            raise InvalidTransitionError("open the result viewer", state.phase.value)
        self._swap(state.evolve(phase=SessionPhase.VIEWING))
        return self._state

    def close(self) -> SessionState:
        """Dismiss the session and clear the result slot.

        Any request still in flight is invalidated. From IDLE this leaves the
        state untouched.
        """
        self._next_generation()
        if self._state != SessionState():
            self._swap(SessionState())
        return self._state

    async def select_history_entry(self, scan_id: str) -> SessionState:
        """Load a past scan into the result slot and show it.

        Raises:
            ValidationError: Empty scan id
            InvalidTransitionError: A scan submission is in flight
        """
        if not isinstance(scan_id, str) or not scan_id.strip():
            raise ValidationError("Scan id is required")
        state = self._state
        if state.phase == SessionPhase.SCANNING:
            raise InvalidTransitionError("open a past scan", state.phase.value)

        scan_id = scan_id.strip()
        generation = self._next_generation()
        self._swap(state.evolve(loading=True))
        log = self.log.bind(scan_id=scan_id, generation=generation)
        log.info("history_entry_requested")

        try:
            payload = await self.client.get_scan(scan_id)
            result = parse_scan_result(payload, scan_id=scan_id, policy=self.policy)
        except SecureEngineError as e:
            self._fail(generation, e, "history")
            return self._state
        except Exception as e:
            log.exception("history_entry_unexpected_error")
            self._fail(generation, e, "history")
            return self._state

        self._swap(
            SessionState(
                phase=SessionPhase.VIEWING,
                active_scan_kind=result.scan_kind,
                current_result=result,
            ),
            generation,
        )
        return self._state
