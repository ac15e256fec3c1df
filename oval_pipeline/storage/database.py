"""
Database connection and schema management for the OVAL dictionary.

This module provides:
- DuckDB connection lifecycle management
- Schema creation for the OVAL relational model (Root -> Definition -> ...)
- Indexes required by the package and CVE lookup paths

Design decisions:
- One shared connection per Database handle, opened lazily
- Row ids come from one sequence per table
- Child rows reference parents by plain BIGINT columns; the refresh
  protocol deletes children before parents, so no FOREIGN KEY is declared
- Every statement is IF NOT EXISTS, so initialize_schema() runs on every start
"""
import logging
from datetime import datetime
from typing import List, Optional

import duckdb

from .exceptions import DatabaseConnectionError, SchemaMigrationError

logger = logging.getLogger(__name__)

TABLES = [
    "fetch_meta",
    "roots",
    "definitions",
    "packages",
    "oval_references",
    "advisories",
    "cves",
    "bugzillas",
    "cpes",
    "debians",
]

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS fetch_meta (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_fetch_meta'),
        file_name VARCHAR NOT NULL UNIQUE,
        snapshot_timestamp TIMESTAMP NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS roots (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_roots'),
        family VARCHAR NOT NULL,
        os_version VARCHAR NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS definitions (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_definitions'),
        root_id BIGINT NOT NULL,
        definition_id VARCHAR,
        title VARCHAR,
        description VARCHAR,
        severity VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS packages (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_packages'),
        definition_id BIGINT NOT NULL,
        name VARCHAR NOT NULL,
        version VARCHAR,
        not_fixed_yet BOOLEAN DEFAULT FALSE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oval_references (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_oval_references'),
        definition_id BIGINT NOT NULL,
        source VARCHAR,
        ref_id VARCHAR,
        ref_url VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS advisories (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_advisories'),
        definition_id BIGINT NOT NULL,
        advisory_id VARCHAR,
        severity VARCHAR,
        issued VARCHAR,
        updated VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cves (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_cves'),
        advisory_id BIGINT NOT NULL,
        cve_id VARCHAR NOT NULL,
        cvss2 VARCHAR,
        cvss3 VARCHAR,
        cwe VARCHAR,
        href VARCHAR,
        public VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bugzillas (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_bugzillas'),
        advisory_id BIGINT NOT NULL,
        bugzilla_id VARCHAR,
        url VARCHAR,
        title VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cpes (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_cpes'),
        advisory_id BIGINT NOT NULL,
        cpe VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS debians (
        id BIGINT PRIMARY KEY DEFAULT nextval('seq_debians'),
        definition_id BIGINT NOT NULL,
        cve_id VARCHAR,
        more_info VARCHAR,
        dsa VARCHAR,
        date VARCHAR
    )
    """,
]

# (index name, table, columns)
INDEXES = [
    ("idx_roots_family_version", "roots", "family, os_version"),
    ("idx_definition_root_id", "definitions", "root_id"),
    ("idx_packages_definition_id", "packages", "definition_id"),
    ("idx_packages_name", "packages", "name"),
    ("idx_reference_definition_id", "oval_references", "definition_id"),
    ("idx_advisories_definition_id", "advisories", "definition_id"),
    ("idx_cves_advisory_id", "cves", "advisory_id"),
    ("idx_cves_cve_id", "cves", "cve_id"),
    ("idx_bugzillas_advisory_id", "bugzillas", "advisory_id"),
    ("idx_cpes_advisory_id", "cpes", "advisory_id"),
    ("idx_debian_definition_id", "debians", "definition_id"),
    ("idx_debian_cve_id", "debians", "cve_id"),
]


class Database:
    """
    Manages the DuckDB connection and schema initialization.

    The handle is created once at startup and passed to every family
    store. Queries may run on an alternate connection from cursor().
    """

    def __init__(self, db_path: str = "oval.duckdb"):
        """
        Initialize database manager.

        Args:
            db_path: Path to DuckDB database file (created if doesn't exist)
        """
        self.db_path = db_path
        self.conn: Optional[duckdb.DuckDBPyConnection] = None

    def connect(self) -> duckdb.DuckDBPyConnection:
        """
        Get or create the shared database connection.

        Raises:
            DatabaseConnectionError: If the database cannot be opened
        """
        if self.conn is None:
            try:
                self.conn = duckdb.connect(self.db_path)
            except duckdb.Error as e:
                raise DatabaseConnectionError(
                    f"Failed to open DB. datafile: {self.db_path}, err: {e}"
                ) from e
        return self.conn

    def cursor(self) -> duckdb.DuckDBPyConnection:
        """Open an additional connection onto the same database."""
        return self.connect().cursor()

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def initialize_schema(self):
        """
        Create sequences, tables and indexes if they don't exist.

        Raises:
            SchemaMigrationError: If any statement fails
        """
        conn = self.connect()

        for table in TABLES:
            self._execute_ddl(conn, f"CREATE SEQUENCE IF NOT EXISTS seq_{table} START 1")

        for statement in SCHEMA_STATEMENTS:
            self._execute_ddl(conn, statement)

        for name, table, columns in INDEXES:
            self._execute_ddl(
                conn,
                f"CREATE INDEX IF NOT EXISTS {name} ON {table}({columns})",
                error_prefix="Failed to create index",
            )

        logger.debug(f"Schema ready at {self.db_path}")

    def list_indexes(self) -> List[str]:
        """Return the names of all user-created indexes."""
        rows = self.connect().execute(
            "SELECT index_name FROM duckdb_indexes() ORDER BY index_name"
        ).fetchall()
        return [r[0] for r in rows]

    def get_current_run_id(self) -> str:
        """
        Generate a unique run ID for a pipeline execution.

        Returns:
            Run ID in format: run_YYYYMMDD_HHMMSS
        """
        return f"run_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}"

    def _execute_ddl(self, conn, statement: str, error_prefix: str = "Failed to migrate"):
        try:
            conn.execute(statement)
        except duckdb.Error as e:
            first_line = " ".join(statement.split())[:80]
            raise SchemaMigrationError(f"{error_prefix}. stmt: {first_line}, err: {e}") from e

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
