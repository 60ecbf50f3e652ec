"""Configuration loading for the client import tool."""
