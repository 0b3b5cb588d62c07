"""Database schema files for the tournament tables."""

from .schema_manager import SchemaManager

__all__ = ["SchemaManager"]
