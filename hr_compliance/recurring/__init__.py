"""Recurring documents (time sheets and payslips)."""
