"""Tenant-scoped, template-driven NL-to-SQL generation."""

__version__ = "0.1.0"
