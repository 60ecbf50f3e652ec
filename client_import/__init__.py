"""Bulk client import/export pipeline for the wealth-management CRM."""

__version__ = "0.1.0"
