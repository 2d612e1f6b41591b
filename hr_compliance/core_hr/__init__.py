"""Core HR module — Employee and Department models, schemas and services."""

from hr_compliance.core_hr.models import Department, Employee, normalize_tax_id

__all__ = ["Employee", "Department", "normalize_tax_id"]
