"""Asynchronous single-page website audits."""

__version__ = "1.0.0"
