"""Logging setup for nodestats."""
