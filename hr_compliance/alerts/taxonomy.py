"""Alert taxonomy mapper.

Maps the free-text alert labels produced by the analysis classifier onto the
closed ``AlertType`` set. Labels are normalized (lower-case, whitespace runs
collapsed to ``_``) and matched by substring against an ordered table; the
first entry that matches wins, so more specific keys come first.
"""

from __future__ import annotations

import logging
import re
from typing import Union

from hr_compliance.common.constants import AlertType, RecurringDocumentType

logger = logging.getLogger(__name__)

# (substring, alert type), evaluated in order.
# "batida_faltante" must precede "falta" or missing punches read as absences.
TIMESHEET_ALERT_KEYS: tuple[tuple[str, AlertType], ...] = (
    ("late_arrival", AlertType.late_arrival),
    ("tardiness", AlertType.late_arrival),
    ("atraso", AlertType.late_arrival),
    ("late", AlertType.late_arrival),
    ("early_departure", AlertType.early_departure),
    ("early_exit", AlertType.early_departure),
    ("saida_antecipada", AlertType.early_departure),
    ("saída_antecipada", AlertType.early_departure),
    ("overtime", AlertType.unauthorized_overtime),
    ("hora_extra", AlertType.unauthorized_overtime),
    ("horas_extras", AlertType.unauthorized_overtime),
    ("missing_punch", AlertType.missing_punch),
    ("batida_faltante", AlertType.missing_punch),
    ("absence", AlertType.absence_without_justification),
    ("falta", AlertType.absence_without_justification),
)

PAYSLIP_ALERT_KEYS: tuple[tuple[str, AlertType], ...] = (
    ("calculation", AlertType.payslip_calculation_error),
    ("erro_calculo", AlertType.payslip_calculation_error),
    ("erro_cálculo", AlertType.payslip_calculation_error),
    ("irregular_discount", AlertType.irregular_discount),
    ("irregular_deduction", AlertType.irregular_discount),
    ("desconto_irregular", AlertType.irregular_discount),
    ("salary_mismatch", AlertType.salary_mismatch),
    ("salario_divergente", AlertType.salary_mismatch),
    ("salário_divergente", AlertType.salary_mismatch),
)

DEFAULT_ALERT_TYPES: dict[RecurringDocumentType, AlertType] = {
    RecurringDocumentType.timesheet: AlertType.late_arrival,
    RecurringDocumentType.payslip: AlertType.payslip_calculation_error,
}

_WHITESPACE = re.compile(r"\s+")


def normalize_label(raw_type: str) -> str:
    return _WHITESPACE.sub("_", (raw_type or "").strip().lower())


def resolve_alert_type(
    raw_type: str,
    document_type: Union[RecurringDocumentType, str],
) -> tuple[AlertType, bool]:
    """Return ``(alert_type, matched_by_default)`` for a classifier label."""
    document_type = RecurringDocumentType(document_type)
    table = (
        TIMESHEET_ALERT_KEYS
        if document_type == RecurringDocumentType.timesheet
        else PAYSLIP_ALERT_KEYS
    )
    normalized = normalize_label(raw_type)
    for key, alert_type in table:
        if key in normalized:
            return alert_type, False

    fallback = DEFAULT_ALERT_TYPES[document_type]
    logger.warning(
        "Unrecognized %s alert label %r; defaulting to %s",
        document_type.value, raw_type, fallback.value,
    )
    return fallback, True


def map_alert_type(
    raw_type: str,
    document_type: Union[RecurringDocumentType, str],
) -> AlertType:
    """Map a classifier label to an ``AlertType`` (default when nothing matches)."""
    return resolve_alert_type(raw_type, document_type)[0]
