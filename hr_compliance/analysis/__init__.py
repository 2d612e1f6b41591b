"""Analysis dispatcher, classifier client, score aggregation and background queue."""

from hr_compliance.analysis.scoring import (
    TIMECLOCK_THRESHOLDS,
    UPLOAD_THRESHOLDS,
    ThresholdPolicy,
    blend_compliance_score,
)

__all__ = [
    "TIMECLOCK_THRESHOLDS",
    "UPLOAD_THRESHOLDS",
    "ThresholdPolicy",
    "blend_compliance_score",
]
