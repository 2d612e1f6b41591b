"""Score aggregation: rolling employee score and per-document status thresholds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from hr_compliance.common.constants import ComplianceStatus

logger = logging.getLogger(__name__)

PREVIOUS_WEIGHT = Decimal("0.7")
LATEST_WEIGHT = Decimal("0.3")


def round_half_up(value: Decimal) -> int:
    """Round halves toward +infinity: ``Decimal("85.5") → 86``."""
    return int((value + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def blend_compliance_score(old_score: int, new_score: int) -> int:
    """Exponential moving blend: ``round_half_up(old*0.7 + new*0.3)``.

    The result is not clamped; out-of-range inputs are only logged.
    """
    for label, value in (("previous", old_score), ("latest", new_score)):
        if not 0 <= value <= 100:
            logger.warning("Compliance score outside 0-100 (%s=%s)", label, value)

    return round_half_up(
        Decimal(old_score) * PREVIOUS_WEIGHT + Decimal(new_score) * LATEST_WEIGHT
    )


@dataclass(frozen=True)
class ThresholdPolicy:
    """Score → ``ComplianceStatus`` cut-offs for one ingestion path."""

    name: str
    compliant_min: int
    warning_min: int

    def status_for(self, score: int) -> ComplianceStatus:
        if score >= self.compliant_min:
            return ComplianceStatus.compliant
        if score >= self.warning_min:
            return ComplianceStatus.warning
        return ComplianceStatus.non_compliant


# Recurring-document upload (time sheets and payslips)
UPLOAD_THRESHOLDS = ThresholdPolicy("upload", compliant_min=80, warning_min=50)
# Time-clock batch import and the manual time-sheet upload
TIMECLOCK_THRESHOLDS = ThresholdPolicy("timeclock", compliant_min=80, warning_min=60)

THRESHOLD_POLICIES: dict[str, ThresholdPolicy] = {
    UPLOAD_THRESHOLDS.name: UPLOAD_THRESHOLDS,
    TIMECLOCK_THRESHOLDS.name: TIMECLOCK_THRESHOLDS,
}
