"""
Exception hierarchy for the OVAL storage layer.

Hierarchy:
- OvalDictionaryError (base)
  - DatabaseConnectionError: the DuckDB file cannot be opened
  - SchemaMigrationError: a table, sequence or index could not be created
  - MalformedInputError: a parsed document is missing required data
  - RefreshError: a refresh transaction failed and was rolled back
  - QueryError: a lookup failed
    - UnknownFamilyError: no store is registered for the family
"""
from typing import Optional


class OvalDictionaryError(RuntimeError):
    """Base exception for all OVAL dictionary operations."""


class DatabaseConnectionError(OvalDictionaryError):
    """Raised when the database cannot be opened."""


class SchemaMigrationError(OvalDictionaryError):
    """Raised when schema creation or an index creation fails."""


class MalformedInputError(OvalDictionaryError):
    """Raised when a parsed document cannot be ingested as-is."""


class RefreshError(OvalDictionaryError):
    """
    Raised when a refresh transaction fails.

    Carries the family, OS version and source file name so the caller
    can report or retry the single failed item.
    """

    def __init__(
        self,
        message: str,
        family: Optional[str] = None,
        os_version: Optional[str] = None,
        file_name: Optional[str] = None,
    ):
        self.family = family
        self.os_version = os_version
        self.file_name = file_name
        super().__init__(message)

    def __str__(self):
        return (
            f"{super().__str__()} "
            f"(family={self.family}, os_version={self.os_version}, file={self.file_name})"
        )


class QueryError(OvalDictionaryError):
    """Raised when a lookup cannot be answered."""


class UnknownFamilyError(QueryError):
    """Raised when no family store matches the requested family."""

    def __init__(self, family: str):
        self.family = family
        super().__init__(f"Unknown OS family: {family}")
