"""
Reporting Exceptions
"""


class ReportError(Exception):
    """Base class for report errors"""

    status_code = 500


class InvalidFilterError(ReportError):
    """Malformed, contradictory or missing report filters"""

    status_code = 400


class UnsupportedExportError(ReportError):
    """Requested export report or format does not exist"""

    status_code = 404
