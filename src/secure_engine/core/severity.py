"""Severity classification of normalized findings.

Buckets findings into VULNERABLE / MODERATE / INFO by their ``severity_raw``
value. The rule is case-insensitive:

- "error"   -> VULNERABLE
- "warning" -> MODERATE
- anything else, including absent -> INFO

The classifier never looks at the engine that produced a finding. DAST risk
levels must already be mapped onto error/warning/info by
``normalizer.map_dast_risk``; otherwise High and Medium DAST risks would
silently land in INFO.

Provides:
- severity_bucket: Bucket for a single raw severity string
- classify: Stable three-way partition of a list of findings
- flatten: Concatenate buckets back into one list
- count_severities: SeverityCount tally of a list of findings
"""

from collections.abc import Iterable

from secure_engine.core.models import NormalizedFinding, SeverityBucket, SeverityCount

BUCKET_ORDER = (SeverityBucket.VULNERABLE, SeverityBucket.MODERATE, SeverityBucket.INFO)


def severity_bucket(severity_raw: str | None) -> SeverityBucket:
    """Map a raw severity string to its bucket.

    Args:
        severity_raw: Severity in the error/warning/info vocabulary

    Returns:
        SeverityBucket, never None

    Example:
        >>> severity_bucket("ERROR")
        <SeverityBucket.VULNERABLE: 'VULNERABLE'>
        >>> severity_bucket("critical")
        <SeverityBucket.INFO: 'INFO'>
    """
    return SeverityBucket.from_severity(severity_raw)


def classify(
    findings: Iterable[NormalizedFinding],
) -> dict[SeverityBucket, list[NormalizedFinding]]:
    """Partition findings into the three severity buckets.

    Every finding lands in exactly one bucket and input order is preserved
    within each bucket. All three keys are always present.

    Args:
        findings: Normalized findings in engine order

    Returns:
        Mapping of bucket to the findings in that bucket
    """
    buckets: dict[SeverityBucket, list[NormalizedFinding]] = {
        bucket: [] for bucket in BUCKET_ORDER
    }
    for finding in findings:
        buckets[severity_bucket(finding.severity_raw)].append(finding)
    return buckets


def flatten(
    buckets: dict[SeverityBucket, list[NormalizedFinding]],
) -> list[NormalizedFinding]:
    """Concatenate buckets, most severe first."""
    flat: list[NormalizedFinding] = []
    for bucket in BUCKET_ORDER:
        flat.extend(buckets.get(bucket, []))
    return flat


def count_severities(findings: Iterable[NormalizedFinding]) -> SeverityCount:
    """Tally findings per bucket into a SeverityCount."""
    buckets = classify(findings)
    return SeverityCount(
        ERROR=len(buckets[SeverityBucket.VULNERABLE]),
        WARNING=len(buckets[SeverityBucket.MODERATE]),
        INFO=len(buckets[SeverityBucket.INFO]),
    )
