"""Pydantic models for classifier verdicts.

The classifier answers in camelCase JSON; every model accepts that shape via
aliases and also the snake_case field names.
"""


from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_compliance.common.constants import AlertSeverity


class AnalysisContext(BaseModel):
    """Employee context passed to the classifier alongside the artifact."""

    name: str = ""
    work_hours: str = "08:00-17:00"
    salary: Optional[float] = None


class AnalysisAlert(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    severity: AlertSeverity
    description: str
    date: Optional[str] = None


class AnalysisVerdict(BaseModel):
    """Common core of every analysis result: a 0–100 score plus raw alerts."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    compliance_score: int = Field(alias="complianceScore")
    alerts: list[AnalysisAlert] = Field(default_factory=list)
    raw_text: Optional[str] = Field(default=None, alias="rawText")


# ── Timesheet ───────────────────────────────────────────────────────

class WorkDay(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str
    entry_time: Optional[str] = Field(default=None, alias="entryTime")
    lunch_out: Optional[str] = Field(default=None, alias="lunchOut")
    lunch_in: Optional[str] = Field(default=None, alias="lunchIn")
    exit_time: Optional[str] = Field(default=None, alias="exitTime")
    total_hours: Optional[float] = Field(default=None, alias="totalHours")
    issues: list[str] = Field(default_factory=list)


class TimesheetSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_days_worked: int = Field(default=0, alias="totalDaysWorked")
    total_hours: float = Field(default=0, alias="totalHours")
    late_arrivals: int = Field(default=0, alias="lateArrivals")
    early_departures: int = Field(default=0, alias="earlyDepartures")
    unauthorized_overtime: int = Field(default=0, alias="unauthorizedOvertime")
    missing_punches: int = Field(default=0, alias="missingPunches")
    absences_without_justification: int = Field(
        default=0, alias="absencesWithoutJustification",
    )


class TimesheetAnalysis(AnalysisVerdict):
    employee_name: Optional[str] = Field(default=None, alias="employeeName")
    reference_date: Optional[str] = Field(default=None, alias="referenceDate")
    work_days: list[WorkDay] = Field(default_factory=list, alias="workDays")
    summary: Optional[TimesheetSummary] = None


# ── Payslip ─────────────────────────────────────────────────────────

class PayslipLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    value: float
    is_regular: Optional[bool] = Field(default=None, alias="isRegular")


class CalculationCheck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_correct: bool = Field(alias="isCorrect")
    expected_net: Optional[float] = Field(default=None, alias="expectedNet")
    actual_net: Optional[float] = Field(default=None, alias="actualNet")
    difference: Optional[float] = None


class PayslipAnalysis(AnalysisVerdict):
    employee_name: Optional[str] = Field(default=None, alias="employeeName")
    reference_month: Optional[str] = Field(default=None, alias="referenceMonth")
    base_salary: Optional[float] = Field(default=None, alias="baseSalary")
    gross_salary: Optional[float] = Field(default=None, alias="grossSalary")
    net_salary: Optional[float] = Field(default=None, alias="netSalary")
    earnings: list[PayslipLine] = Field(default_factory=list)
    deductions: list[PayslipLine] = Field(default_factory=list)
    calculation_check: Optional[CalculationCheck] = Field(
        default=None, alias="calculationCheck",
    )


# ── Classification ──────────────────────────────────────────────────

class DocumentClassification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_type: str = Field(alias="documentType")
    confidence: float
    extracted_data: dict[str, Any] = Field(default_factory=dict, alias="extractedData")
