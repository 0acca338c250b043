"""
Ingestion Module

Demo data loading.
"""
