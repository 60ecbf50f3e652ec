"""Logging setup and structured error log for the client import tool."""
