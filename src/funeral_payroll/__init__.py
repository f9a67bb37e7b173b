"""Payroll period processing for funeral home back offices."""

__version__ = "1.0.0"
