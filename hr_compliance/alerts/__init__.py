"""Compliance alerts — model, taxonomy mapper and alert store."""

from hr_compliance.alerts.models import ComplianceAlert
from hr_compliance.alerts.taxonomy import map_alert_type, resolve_alert_type

__all__ = ["ComplianceAlert", "map_alert_type", "resolve_alert_type"]
