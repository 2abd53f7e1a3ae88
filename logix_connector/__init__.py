"""Caching connector for the Logix commerce-accounting API."""

__version__ = "0.1.0"
