"""
Storage layer for the OVAL dictionary.

This module persists parsed OVAL documents in DuckDB and answers package
and CVE lookups per OS family.

Components:
- Database: Connection management and schema initialization
- OvalStore: Refresh protocol and lookups shared by every family
- RedHatStore, OracleStore, DebianStore, SuseStore: Family stores
- FetchMetaGuard: Snapshot freshness check keyed by source file name
- dispatch: Routes a lookup to the store for a family

Usage:
    from storage import Database, new_store, dispatch

    db = Database("oval.duckdb")
    db.initialize_schema()

    store = new_store(db, "redhat")
    store.insert_oval(root, fetch_meta)

    defs = dispatch(db, "redhat", "7", "openssl", "package")
"""

from .database import Database
from .debian import DebianStore
from .dispatcher import (
    MODE_CVE,
    MODE_PACKAGE,
    STORE_REGISTRY,
    dispatch,
    get_by_cve_id,
    get_by_pack_name,
    new_store,
)
from .exceptions import (
    DatabaseConnectionError,
    MalformedInputError,
    OvalDictionaryError,
    QueryError,
    RefreshError,
    SchemaMigrationError,
    UnknownFamilyError,
)
from .fetch_meta import FetchMetaGuard
from .models import (
    Advisory,
    Bugzilla,
    Cpe,
    Cve,
    Debian,
    Definition,
    FetchMeta,
    Package,
    Reference,
    Root,
    major_version,
)
from .oracle import OracleStore
from .oval_store import OvalStore
from .redhat import RedHatStore
from .suse import SuseStore

__all__ = [
    "Database",
    "OvalStore",
    "RedHatStore",
    "OracleStore",
    "DebianStore",
    "SuseStore",
    "FetchMetaGuard",
    "STORE_REGISTRY",
    "MODE_CVE",
    "MODE_PACKAGE",
    "dispatch",
    "get_by_cve_id",
    "get_by_pack_name",
    "new_store",
    "OvalDictionaryError",
    "DatabaseConnectionError",
    "SchemaMigrationError",
    "MalformedInputError",
    "RefreshError",
    "QueryError",
    "UnknownFamilyError",
    "Advisory",
    "Bugzilla",
    "Cpe",
    "Cve",
    "Debian",
    "Definition",
    "FetchMeta",
    "Package",
    "Reference",
    "Root",
    "major_version",
]
