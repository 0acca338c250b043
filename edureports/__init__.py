"""
Course Sales Reports
"""

__version__ = "1.0.0"
