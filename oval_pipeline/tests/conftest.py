"""
Shared pytest fixtures for OVAL dictionary tests.

This module provides a temporary DuckDB database per test and small
factories for building Root documents without going through XML.
"""
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from storage import (
    Advisory,
    Bugzilla,
    Cpe,
    Cve,
    Database,
    Debian,
    Definition,
    FetchMeta,
    Package,
    Reference,
    Root,
)


@pytest.fixture
def temp_db():
    """
    Create a temporary database for testing.

    Yields:
        Database instance with schema initialized

    Cleanup:
        Automatically closes connection and removes file after test
    """
    # DuckDB will create the actual database file
    with tempfile.NamedTemporaryFile(suffix=".duckdb", delete=True) as f:
        db_path = f.name

    db = Database(db_path)
    db.initialize_schema()
    yield db
    db.close()

    Path(db_path).unlink(missing_ok=True)
    Path(db_path + ".wal").unlink(missing_ok=True)


@pytest.fixture
def make_definition():
    """
    Factory for a Definition with one advisory.

    Usage:
        make_definition("oval:def:1", packages=["libfoo"], cves=["CVE-2099-0001"])
    """
    def _make(
        def_id: str,
        packages: List[str] = (),
        cves: List[str] = (),
        title: str = "",
        bugzillas: List[str] = (),
        cpes: List[str] = (),
        debian_cve: str = None,
    ) -> Definition:
        return Definition(
            definition_id=def_id,
            title=title or def_id,
            description=f"Description of {def_id}",
            severity="Important",
            advisory=Advisory(
                advisory_id=f"ADV-{def_id}",
                severity="Important",
                issued="2099-01-01",
                updated="2099-01-02",
                cves=[Cve(cve_id=c, cvss3="7.5", href=f"https://cve.example/{c}") for c in cves],
                bugzillas=[Bugzilla(bugzilla_id=b, url=f"https://bugzilla.example/{b}", title=b) for b in bugzillas],
                affected_cpe_list=[Cpe(cpe=c) for c in cpes],
            ),
            affected_packs=[Package(name=p, version="1.2.3-4.1") for p in packages],
            references=[Reference(source="CVE", ref_id=c, ref_url=f"https://cve.example/{c}") for c in cves],
            debian=Debian(cve_id=debian_cve, more_info="info", dsa="DSA-0000-1", date="2099-01-01") if debian_cve else None,
        )
    return _make


@pytest.fixture
def make_root():
    """Factory for a Root document."""
    def _make(family: str, os_version: str, definitions: List[Definition] = ()) -> Root:
        return Root(family=family, os_version=os_version, definitions=list(definitions))
    return _make


@pytest.fixture
def snapshot_times():
    """Two distinct generator timestamps, older first."""
    return datetime(2099, 1, 1, 12, 0, 0), datetime(2099, 2, 1, 12, 0, 0)


@pytest.fixture
def suse_meta(snapshot_times):
    """FetchMeta factory for the openSUSE 13.2 feed file."""
    def _make(timestamp: datetime = None) -> FetchMeta:
        return FetchMeta(file_name="opensuse.13.2.xml", timestamp=timestamp or snapshot_times[0])
    return _make


def count_rows(db: Database, table: str) -> int:
    return db.connect().execute(f"SELECT count(*) FROM {table}").fetchone()[0]


@pytest.fixture
def row_counts(temp_db):
    """Return a function giving the row count of every OVAL table."""
    tables = ["roots", "definitions", "packages", "oval_references", "advisories",
              "cves", "bugzillas", "cpes", "debians", "fetch_meta"]

    def _counts():
        return {t: count_rows(temp_db, t) for t in tables}
    return _counts
