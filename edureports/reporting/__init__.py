"""
Reporting Module

Data access, aggregation, formatting and export of the course sales reports.
"""
from .errors import InvalidFilterError, ReportError, UnsupportedExportError
from .filters import ReportFilters

__all__ = [
    "InvalidFilterError",
    "ReportError",
    "UnsupportedExportError",
    "ReportFilters",
]
