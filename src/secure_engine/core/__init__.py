"""Core scan result handling.

Provides:
- Data model for raw findings, normalized findings, results and session state
- Finding normalization for SAST and DAST payloads
- Severity bucket classification and counting
- Security score computation with a configurable fallback policy
"""

from .errors import (
    DataShapeError,
    EngineError,
    InvalidTransitionError,
    SecureEngineError,
    TransportError,
    ValidationError,
)
from .models import NormalizedFinding, ScanKind, ScanResult, SeverityBucket, SeverityCount
from .normalizer import map_dast_risk, normalize, parse_history_entry, parse_scan_result
from .scoring import ScoringPolicy, compute_fallback_score, score
from .severity import classify, count_severities, flatten, severity_bucket

__all__ = [
    "DataShapeError",
    "EngineError",
    "InvalidTransitionError",
    "SecureEngineError",
    "TransportError",
    "ValidationError",
    "NormalizedFinding",
    "ScanKind",
    "ScanResult",
    "SeverityBucket",
    "SeverityCount",
    "map_dast_risk",
    "normalize",
    "parse_history_entry",
    "parse_scan_result",
    "ScoringPolicy",
    "compute_fallback_score",
    "score",
    "classify",
    "count_severities",
    "flatten",
    "severity_bucket",
]
