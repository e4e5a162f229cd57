"""Normalization of raw SAST/DAST engine payloads.

This is the only module that knows the two engine vocabularies. Everything
downstream (classification, scoring, the session controller) works on
NormalizedFinding and ScanResult and never branches on the engine again.

Malformed payloads degrade instead of failing: missing severities become
"info", missing counts are derived from the findings, a missing score
triggers the fallback computation and unusable findings are skipped.

Provides:
- map_dast_risk: DAST risk level -> error/warning/info
- normalize: Raw finding -> NormalizedFinding
- infer_scan_kind: Guess the engine from a result payload
- parse_scan_result: Result payload -> ScanResult
- parse_history_entry: History row payload -> ScanHistoryEntry
"""

import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

import structlog
from pydantic import BaseModel

from secure_engine.core.errors import DataShapeError
from secure_engine.core.models import (
    FindingLocation,
    NormalizedFinding,
    RawDastFinding,
    RawSastFinding,
    ScanHistoryEntry,
    ScanKind,
    ScanResult,
    SeverityCount,
)
from secure_engine.core.scoring import ScoringPolicy, score
from secure_engine.core.severity import count_severities

logger = structlog.get_logger()

SAST_VOCABULARY = ("error", "warning", "info")

# ZAP reports risk both as words and as 0-3 codes
DAST_RISK_MAP = {
    "critical": "error",
    "high": "error",
    "4": "error",
    "3": "error",
    "medium": "warning",
    "moderate": "warning",
    "2": "warning",
    "low": "info",
    "informational": "info",
    "info": "info",
    "1": "info",
    "0": "info",
}


def map_dast_risk(risk: Any) -> str:
    """Map a DAST risk level onto the SAST error/warning/info vocabulary.

    Args:
        risk: Engine risk, e.g. "High", "Medium", "Low", "Informational",
            a ZAP riskdesc such as "High (Medium)", or a numeric code

    Returns:
        "error", "warning" or "info" ("info" for unknown or missing values)

    Example:
        >>> map_dast_risk("High (Medium)")
        'error'
        >>> map_dast_risk(None)
        'info'
    """
    if risk is None or isinstance(risk, bool):
        return "info"
    text = str(risk).strip().lower()
    if not text:
        return "info"
    if text in SAST_VOCABULARY:
        return text
    leading = text.split()[0].rstrip(":")
    return DAST_RISK_MAP.get(leading, "info")


# Field helpers. Each raises DataShapeError on a wrong type; callers decide
# whether to absorb it.


def _mapping(value: Any, field: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise DataShapeError(f"{field} is not an object")
    return value


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise DataShapeError("expected a scalar value")
    text = str(value)
    return text if text else None


def _int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _safe_text(value: Any) -> str | None:
    try:
        return _text(value)
    except DataShapeError:
        return None


def _safe_mapping(value: Any, field: str) -> Mapping[str, Any]:
    try:
        return _mapping(value, field)
    except DataShapeError as e:
        logger.debug("field_shape_degraded", field=field, error=str(e))
        return {}


def _normalize_sast(raw: Mapping[str, Any]) -> NormalizedFinding:
    extra = _safe_mapping(raw.get("extra"), "extra")
    start = _safe_mapping(raw.get("start"), "start")
    end = _safe_mapping(raw.get("end"), "end")

    severity = _safe_text(extra.get("severity")) or "info"
    path = _safe_text(raw.get("path"))
    location = None
    if path:
        location = FindingLocation(
            path=path,
            start_line=_int(start.get("line")),
            end_line=_int(end.get("line")),
        )

    return NormalizedFinding(
        id=_safe_text(raw.get("check_id")) or "unknown",
        scan_kind=ScanKind.SAST,
        severity_raw=severity,
        engine_severity=severity,
        message=_safe_text(extra.get("message")) or "",
        location=location,
        description=_safe_text(extra.get("description")),
        solution=_safe_text(extra.get("solution")),
        reference=_safe_text(extra.get("reference")),
        risk_severity=_float(raw.get("risk_severity")),
        exploitability=_safe_text(raw.get("exploitability")),
        impact=_safe_text(raw.get("impact")),
        detected_at=_timestamp(raw.get("detection_timestamp")),
    )


def _normalize_dast(raw: Mapping[str, Any]) -> NormalizedFinding:
    risk = _safe_text(raw.get("risk")) or _safe_text(raw.get("riskdesc"))
    name = _safe_text(raw.get("name")) or _safe_text(raw.get("alert")) or ""
    finding_id = (
        _safe_text(raw.get("pluginid"))
        or _safe_text(raw.get("alertRef"))
        or name
        or "unknown"
    )

    return NormalizedFinding(
        id=finding_id,
        scan_kind=ScanKind.DAST,
        severity_raw=map_dast_risk(risk),
        engine_severity=risk,
        message=name,
        location=None,
        description=_safe_text(raw.get("description")),
        solution=_safe_text(raw.get("solution")),
        reference=_safe_text(raw.get("reference")),
        url=_safe_text(raw.get("url")),
        cwe_id=_safe_text(raw.get("cweid")),
        wasc_id=_safe_text(raw.get("wascid")),
        evidence=_safe_text(raw.get("evidence")),
        confidence=_safe_text(raw.get("confidence")),
    )


def normalize(
    raw: Mapping[str, Any] | RawSastFinding | RawDastFinding, kind: ScanKind
) -> NormalizedFinding:
    """Convert one raw engine finding into a NormalizedFinding.

    Total: malformed nested fields fall back to defaults and an unknown
    severity lands in INFO. Nothing here raises.

    Args:
        raw: Finding payload (mapping or typed raw model)
        kind: Engine that produced the finding

    Returns:
        NormalizedFinding tagged with ``kind``
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        raw = {}

    if kind == ScanKind.DAST:
        return _normalize_dast(raw)
    return _normalize_sast(raw)


def infer_scan_kind(payload: Mapping[str, Any], default: ScanKind = ScanKind.SAST) -> ScanKind:
    """Work out which engine produced a result payload.

    Checks ``scan_metadata.scan_type``, then a ``target_url`` field, then
    the shape of the first finding.
    """
    metadata = payload.get("scan_metadata")
    if isinstance(metadata, Mapping):
        scan_type = str(metadata.get("scan_type") or "").upper()
        if scan_type in ScanKind.__members__:
            return ScanKind(scan_type)

    if payload.get("target_url"):
        return ScanKind.DAST

    findings = payload.get("vulnerabilities")
    if isinstance(findings, list) and findings and isinstance(findings[0], Mapping):
        first = findings[0]
        if "risk" in first and "extra" not in first:
            return ScanKind.DAST
        if "extra" in first or "check_id" in first:
            return ScanKind.SAST

    return default


def _findings(payload: Mapping[str, Any], kind: ScanKind) -> list[NormalizedFinding]:
    raw_findings = payload.get("vulnerabilities")
    if raw_findings is None:
        raw_findings = payload.get("findings", [])
    if not isinstance(raw_findings, list):
        logger.warning("findings_not_a_list", type=type(raw_findings).__name__)
        return []

    findings = []
    for index, raw in enumerate(raw_findings):
        if not isinstance(raw, Mapping):
            logger.warning("finding_skipped", index=index, type=type(raw).__name__)
            continue
        findings.append(normalize(raw, kind))
    return findings


def parse_scan_result(
    payload: Mapping[str, Any],
    kind: ScanKind | None = None,
    *,
    target: str | None = None,
    scan_id: str | None = None,
    policy: ScoringPolicy | None = None,
) -> ScanResult:
    """Normalize, classify and score a ScanResult-shaped payload.

    Args:
        payload: JSON object from /scan/upload, /scan/dast or /scan/scan/{id}
        kind: Engine, if known from the call site; inferred otherwise
        target: Filename or URL to fall back on for ``target_descriptor``
        scan_id: Id to fall back on when the payload carries none
        policy: Scoring weights for the fallback score

    Returns:
        Immutable ScanResult
    """
    if not isinstance(payload, Mapping):
        logger.warning("scan_payload_not_an_object", type=type(payload).__name__)
        payload = {}

    kind = kind or infer_scan_kind(payload)
    findings = _findings(payload, kind)

    metadata = dict(_safe_mapping(payload.get("scan_metadata"), "scan_metadata"))

    if isinstance(payload.get("severity_count"), Mapping):
        counts = SeverityCount.from_payload(dict(payload["severity_count"]))
    else:
        counts = count_severities(findings)

    result_id = (
        _safe_text(payload.get("scan_id"))
        or _safe_text(payload.get("id"))
        or scan_id
        or str(uuid4())
    )
    target_descriptor = (
        _safe_text(payload.get("file_name"))
        or _safe_text(payload.get("target_url"))
        or _safe_text(metadata.get("target_url"))
        or target
        or ""
    )
    duration = _float(payload.get("scan_duration"))
    if duration is None:
        duration = _float(metadata.get("scan_duration"))
    timestamp = _timestamp(payload.get("scan_timestamp")) or _timestamp(metadata.get("scan_date"))

    report_html = metadata.pop("report_html", None)
    if report_html is not None and not isinstance(report_html, str):
        report_html = None

    return ScanResult(
        scan_id=result_id,
        scan_kind=kind,
        findings=findings,
        severity_count=counts,
        security_score=score(payload.get("security_score"), counts, policy),
        scan_timestamp=timestamp,
        scan_duration_seconds=duration,
        target_descriptor=target_descriptor,
        report_html=report_html,
        metadata=metadata,
    )


def parse_history_entry(
    payload: Mapping[str, Any], policy: ScoringPolicy | None = None
) -> ScanHistoryEntry:
    """Build a ScanHistoryEntry from one row of /scan/history.

    ``policy`` must match the one used for full results so a row and its
    detail view agree on the fallback score.
    """
    if not isinstance(payload, Mapping):
        payload = {}

    counts = SeverityCount.from_payload(payload.get("severity_count"))
    total = _int(payload.get("total_vulnerabilities"))
    if total is None or total < 0:
        total = counts.total

    return ScanHistoryEntry(
        id=_safe_text(payload.get("id")) or _safe_text(payload.get("scan_id")) or "",
        target_descriptor=(
            _safe_text(payload.get("file_name"))
            or _safe_text(payload.get("target_url"))
            or ""
        ),
        scan_timestamp=_timestamp(payload.get("scan_timestamp")),
        security_score=score(payload.get("security_score"), counts, policy),
        total_vulnerabilities=total,
        severity_count=counts,
        scan_duration_seconds=_float(payload.get("scan_duration")),
        scan_status=_safe_text(payload.get("scan_status")) or "unknown",
    )
