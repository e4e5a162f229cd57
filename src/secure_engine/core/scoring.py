"""Security score calculation (0-10, higher is safer).

Two modes:

1. Trusted score: when the scan service already supplied ``security_score``
   it is passed through, rounded to one decimal.
2. Fallback: computed from severity counts only when no upstream score
   exists. Each finding contributes its bucket weight; the mean weight is
   scaled to 0-10 and subtracted from 10.

Provides:
- ScoringPolicy: Per-bucket weights
- compute_fallback_score: Score from counts
- score: Trusted-or-fallback score
- score_result: Fallback score for an already normalized ScanResult
- score_rating: good / fair / poor band for display
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from secure_engine.core.models import ScanResult, SeverityCount

logger = structlog.get_logger()

MAX_SCORE = 10.0
MIN_SCORE = 0.0


class ScoringPolicy(BaseModel):
    """Weights applied per bucket by the fallback computation."""

    model_config = ConfigDict(frozen=True)

    error_weight: float = Field(default=1.0, ge=0.0, le=1.0)
    warning_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    info_weight: float = Field(default=0.1, ge=0.0, le=1.0)


DEFAULT_POLICY = ScoringPolicy()


def _round_score(value: float) -> float:
    """Round half-up to one decimal and clamp to the score range."""
    rounded = float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    return min(max(rounded, MIN_SCORE), MAX_SCORE)


def compute_fallback_score(
    counts: SeverityCount, policy: ScoringPolicy | None = None
) -> float:
    """Compute a score from severity counts.

    Args:
        counts: ERROR/WARNING/INFO tallies
        policy: Bucket weights (defaults to 1.0 / 0.5 / 0.1)

    Returns:
        Score in [0, 10], one decimal

    Example:
        >>> compute_fallback_score(SeverityCount(INFO=10))
        9.0
        >>> compute_fallback_score(SeverityCount())
        10.0
    """
    policy = policy or DEFAULT_POLICY
    total = counts.total
    if total == 0:
        return MAX_SCORE

    weighted = (
        counts.ERROR * policy.error_weight
        + counts.WARNING * policy.warning_weight
        + counts.INFO * policy.info_weight
    )
    return _round_score(MAX_SCORE - (weighted / total) * MAX_SCORE)


def score(
    upstream_score: Any,
    counts: SeverityCount,
    policy: ScoringPolicy | None = None,
) -> float:
    """Return the upstream score if there is one, else the fallback.

    Args:
        upstream_score: ``security_score`` from the service payload (may be
            None, missing or malformed)
        counts: Severity counts used by the fallback
        policy: Bucket weights for the fallback

    Returns:
        Score in [0, 10], one decimal
    """
    if upstream_score is not None and not isinstance(upstream_score, bool):
        try:
            trusted = float(Decimal(str(upstream_score)))
        except (InvalidOperation, ValueError):
            logger.warning("upstream_score_unusable", value=repr(upstream_score))
        else:
            if math.isfinite(trusted):
                if not MIN_SCORE <= trusted <= MAX_SCORE:
                    logger.warning("upstream_score_out_of_range", value=trusted)
                return _round_score(trusted)

    return compute_fallback_score(counts, policy)


def score_result(result: ScanResult, policy: ScoringPolicy | None = None) -> float:
    """Recompute the fallback score of a result from its counts."""
    return compute_fallback_score(result.severity_count, policy)


def score_rating(value: float) -> str:
    """Band a score for display: good (>= 7), fair (>= 4), poor."""
    if value >= 7:
        return "good"
    if value >= 4:
        return "fair"
    return "poor"
