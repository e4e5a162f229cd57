"""Data model shared by the normalizer, scorer, session and history layers.

Provides:
- ScanKind / SeverityBucket: Discriminants for scan engine and severity bucket
- RawSastFinding / RawDastFinding: Engine payload shapes, pre-normalization
- NormalizedFinding: Common finding shape with a resolved severity bucket
- SeverityCount: ERROR/WARNING/INFO tallies
- ScanResult / ScanHistoryEntry / HistoryPage: Remote scan projections
- PendingFile / SessionPhase / SessionState: Session controller state
"""

import mimetypes
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ScanKind(str, Enum):
    """Which remote engine produced a result."""

    SAST = "SAST"
    DAST = "DAST"


class SeverityBucket(str, Enum):
    """Three-way severity partition.

    VULNERABLE, MODERATE and INFO correspond to the ERROR, WARNING and INFO
    count keys used by the scan service.
    """

    VULNERABLE = "VULNERABLE"
    MODERATE = "MODERATE"
    INFO = "INFO"

    @classmethod
    def from_severity(cls, severity: str | None) -> "SeverityBucket":
        """Resolve a raw severity string; anything unrecognized is INFO."""
        if not isinstance(severity, str):
            return cls.INFO
        return _BUCKET_BY_SEVERITY.get(severity.strip().lower(), cls.INFO)

    @property
    def count_key(self) -> str:
        """Key of this bucket in a severity_count payload."""
        return _COUNT_KEY_BY_BUCKET[self]


_BUCKET_BY_SEVERITY = {
    "error": SeverityBucket.VULNERABLE,
    "warning": SeverityBucket.MODERATE,
}

_COUNT_KEY_BY_BUCKET = {
    SeverityBucket.VULNERABLE: "ERROR",
    SeverityBucket.MODERATE: "WARNING",
    SeverityBucket.INFO: "INFO",
}


# Raw engine payloads


class LinePosition(BaseModel):
    line: int | None = None


class SastExtra(BaseModel):
    message: str = ""
    severity: str | None = None
    description: str | None = None
    solution: str | None = None
    reference: str | None = None


class RawSastFinding(BaseModel):
    """Single SAST engine finding as received from ``/scan/upload``."""

    check_id: str = ""
    path: str = ""
    start: LinePosition = Field(default_factory=LinePosition)
    end: LinePosition = Field(default_factory=LinePosition)
    extra: SastExtra = Field(default_factory=SastExtra)

    # Enrichment added by the scan service
    risk_severity: float | None = None
    exploitability: str | None = None
    impact: str | None = None
    detection_timestamp: str | None = None


class RawDastFinding(BaseModel):
    """Single DAST engine finding as received from ``/scan/dast``."""

    risk: str | None = None
    name: str = ""
    description: str | None = None
    solution: str | None = None
    reference: str | None = None
    cweid: str | None = None
    wascid: str | None = None
    evidence: str | None = None
    confidence: str | None = None
    url: str | None = None


# Normalized shapes


class FindingLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    start_line: int | None = None
    end_line: int | None = None

    def __str__(self) -> str:
        if self.start_line is None:
            return self.path
        if self.end_line is None or self.end_line == self.start_line:
            return f"{self.path}:{self.start_line}"
        return f"{self.path}:{self.start_line}-{self.end_line}"


class NormalizedFinding(BaseModel):
    """Engine-independent finding.

    ``scan_kind`` is the variant tag; the normalizer is the only place that
    reads it. ``severity_bucket`` is derived from ``severity_raw`` on access,
    so the two can never disagree.

    Attributes:
        id: Engine rule/check identifier
        scan_kind: Engine that produced the finding
        severity_raw: Severity in the error/warning/info vocabulary
        engine_severity: Severity exactly as the engine reported it
        message: One-line summary
        location: File position (SAST only)
    """

    model_config = ConfigDict(frozen=True)

    id: str
    scan_kind: ScanKind
    severity_raw: str = "info"
    engine_severity: str | None = None
    message: str = ""
    location: FindingLocation | None = None
    description: str | None = None
    solution: str | None = None
    reference: str | None = None

    url: str | None = None
    cwe_id: str | None = None
    wasc_id: str | None = None
    evidence: str | None = None
    confidence: str | None = None
    risk_severity: float | None = None
    exploitability: str | None = None
    impact: str | None = None
    detected_at: datetime | None = None

    @computed_field
    @property
    def severity_bucket(self) -> SeverityBucket:
        return SeverityBucket.from_severity(self.severity_raw)


class SeverityCount(BaseModel):
    """Per-bucket finding counts keyed the way the scan service keys them."""

    model_config = ConfigDict(frozen=True)

    ERROR: int = Field(default=0, ge=0)
    WARNING: int = Field(default=0, ge=0)
    INFO: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.ERROR + self.WARNING + self.INFO

    def for_bucket(self, bucket: SeverityBucket) -> int:
        return getattr(self, bucket.count_key)

    @classmethod
    def from_payload(cls, payload: Any) -> "SeverityCount":
        """Build counts from a ``severity_count`` mapping.

        Every key is optional. Missing, negative or non-numeric values
        count as 0.
        """
        if not isinstance(payload, dict):
            return cls()
        values = {}
        for key in ("ERROR", "WARNING", "INFO"):
            raw = payload.get(key, 0)
            try:
                value = int(raw)
            except (TypeError, ValueError, OverflowError):
                value = 0
            values[key] = max(value, 0)
        return cls(**values)


class ScanResult(BaseModel):
    """One completed remote scan, normalized and scored."""

    model_config = ConfigDict(frozen=True)

    scan_id: str
    scan_kind: ScanKind
    findings: list[NormalizedFinding] = Field(default_factory=list)
    severity_count: SeverityCount = Field(default_factory=SeverityCount)
    security_score: float = Field(ge=0.0, le=10.0)
    scan_timestamp: datetime | None = None
    scan_duration_seconds: float | None = None
    target_descriptor: str = ""
    report_html: str | None = None  # DAST only, passed through untouched
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def total_vulnerabilities(self) -> int:
        return len(self.findings)


class ScanHistoryEntry(BaseModel):
    """Summary row of a past scan (no findings)."""

    model_config = ConfigDict(frozen=True)

    id: str
    target_descriptor: str = ""
    scan_timestamp: datetime | None = None
    security_score: float = Field(default=10.0, ge=0.0, le=10.0)
    total_vulnerabilities: int = Field(default=0, ge=0)
    severity_count: SeverityCount = Field(default_factory=SeverityCount)
    scan_duration_seconds: float | None = None
    scan_status: str = "unknown"


class HistoryPage(BaseModel):
    """A page of history entries plus the remote total."""

    model_config = ConfigDict(frozen=True)

    entries: list[ScanHistoryEntry] = Field(default_factory=list)
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=10, ge=1)
    total_count: int = Field(default=0, ge=0)

    @property
    def page_index(self) -> int:
        return self.offset // self.limit

    @property
    def page_count(self) -> int:
        return -(-self.total_count // self.limit)

    @property
    def has_next(self) -> bool:
        return self.offset + self.limit < self.total_count

    @property
    def has_previous(self) -> bool:
        return self.offset > 0


# Session


class PendingFile(BaseModel):
    """File chosen for upload, held as opaque bytes."""

    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: str | Path) -> "PendingFile":
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )


class SessionPhase(str, Enum):
    IDLE = "IDLE"
    FILE_SELECTED = "FILE_SELECTED"
    SCANNING = "SCANNING"
    RESULT_READY = "RESULT_READY"
    VIEWING = "VIEWING"
    ERROR = "ERROR"


class SessionState(BaseModel):
    """Snapshot of the scan session.

    Replaced wholesale on every transition. Holding a single
    ``current_result`` slot means two results can never be open at once.
    """

    model_config = ConfigDict(frozen=True)

    phase: SessionPhase = SessionPhase.IDLE
    pending_file: PendingFile | None = None
    active_scan_kind: ScanKind | None = None
    target_url: str | None = None
    current_result: ScanResult | None = None
    last_error: str | None = None
    loading: bool = False

    def evolve(self, **changes: Any) -> "SessionState":
        """Return a copy with ``changes`` applied."""
        return self.model_copy(update=changes)
