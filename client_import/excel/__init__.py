"""Spreadsheet decoding/encoding for the client import format."""
