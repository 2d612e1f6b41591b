"""HR Compliance: document lifecycle engine for workforce regulatory compliance."""

__version__ = "1.0.0"
