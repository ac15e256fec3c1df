"""
Shared storage contract for per-family OVAL stores.

Every OS family store inherits the refresh protocol and the two lookups
from OvalStore. Families differ only in their discriminator, in which
auxiliary tables hang off their definitions, and (for Debian) in the
entry point of the CVE lookup.

Refresh protocol (insert_oval), one transaction:
1. Check fetch_meta; an identical snapshot is a no-op
2. Delete the existing Root for (family, os_version), deepest children first
3. Insert the new Root with its full nested closure
4. Record the snapshot in fetch_meta
5. Commit, or roll back everything on any failure

Lookups resolve definitions with explicit joins and hydrate them with one
batched query per child table, independent of the number of matches.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import duckdb

from .database import Database
from .exceptions import MalformedInputError, QueryError, RefreshError
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

logger = logging.getLogger(__name__)

DEFINITION_COLUMNS = "d.id, d.root_id, d.definition_id, d.title, d.description, d.severity"

# Deepest children first. Every statement is parameterized by the root id.
DELETE_ROOT_CLOSURE = [
    ("cves", """
        DELETE FROM cves WHERE advisory_id IN (
            SELECT a.id FROM advisories a
            JOIN definitions d ON a.definition_id = d.id
            WHERE d.root_id = ?)
    """),
    ("bugzillas", """
        DELETE FROM bugzillas WHERE advisory_id IN (
            SELECT a.id FROM advisories a
            JOIN definitions d ON a.definition_id = d.id
            WHERE d.root_id = ?)
    """),
    ("cpes", """
        DELETE FROM cpes WHERE advisory_id IN (
            SELECT a.id FROM advisories a
            JOIN definitions d ON a.definition_id = d.id
            WHERE d.root_id = ?)
    """),
    ("advisories", """
        DELETE FROM advisories WHERE definition_id IN (
            SELECT id FROM definitions WHERE root_id = ?)
    """),
    ("packages", """
        DELETE FROM packages WHERE definition_id IN (
            SELECT id FROM definitions WHERE root_id = ?)
    """),
    ("oval_references", """
        DELETE FROM oval_references WHERE definition_id IN (
            SELECT id FROM definitions WHERE root_id = ?)
    """),
    ("debians", """
        DELETE FROM debians WHERE definition_id IN (
            SELECT id FROM definitions WHERE root_id = ?)
    """),
    ("definitions", "DELETE FROM definitions WHERE root_id = ?"),
    ("roots", "DELETE FROM roots WHERE id = ?"),
]


def _placeholders(ids: Sequence[int]) -> str:
    return ", ".join("?" for _ in ids)


def _fetch_dicts(conn, sql: str, params: List[Any]) -> List[Dict[str, Any]]:
    cur = conn.execute(sql, params)
    columns = [desc[0] for desc in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


class OvalStore:
    """
    Base store for one OS family.

    Subclasses set `family` and list the auxiliary child tables their
    definitions carry (bugzillas, cpes, debians).
    """

    family: str = ""
    auxiliary_tables: Sequence[str] = ()

    def __init__(self, database: Database, family: Optional[str] = None):
        """
        Args:
            database: Shared database handle created at startup
            family: Overrides the class-level family discriminator
        """
        self.db = database
        if family is not None:
            self.family = family
        self.guard = FetchMetaGuard()

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def insert_oval(self, root: Root, meta: FetchMeta) -> bool:
        """
        Replace the stored Root for (family, os_version) with `root`.

        Args:
            root: Fully populated parsed document
            meta: Source snapshot (file name + generator timestamp)

        Returns:
            True if the Root was refreshed, False if the snapshot was
            already stored and nothing changed

        Raises:
            MalformedInputError: If root or meta lacks required fields
            RefreshError: If the transaction failed; nothing was changed
        """
        self._validate(root, meta)
        conn = self.db.connect()

        conn.begin()
        try:
            if self.guard.should_skip(conn, meta.file_name, meta.timestamp):
                conn.rollback()
                logger.info(f"  Skip {root.family} {root.os_version} (Same Timestamp)")
                return False

            logger.info(f"  Refreshing {root.family} {root.os_version}...")

            for old_root_id in self._find_root_ids(conn, root.family, root.os_version):
                self._delete_root(conn, old_root_id)

            root_id = self._insert_root(conn, root)
            self.guard.record_fetch(conn, meta)
            conn.commit()

        except Exception as e:
            self._rollback(conn)
            raise RefreshError(
                f"Failed to refresh OVAL: {e}",
                family=root.family,
                os_version=root.os_version,
                file_name=meta.file_name,
            ) from e

        logger.info(
            f"  Stored {len(root.definitions)} definitions for "
            f"{root.family} {root.os_version} (root {root_id})"
        )
        return True

    def insert_fetch_meta(self, meta: FetchMeta) -> bool:
        """
        Record a snapshot in fetch_meta on its own.

        Returns:
            False if an identical snapshot was already recorded
        """
        conn = self.db.connect()
        conn.begin()
        try:
            if self.guard.should_skip(conn, meta.file_name, meta.timestamp):
                conn.rollback()
                return False
            self.guard.record_fetch(conn, meta)
            conn.commit()
        except Exception as e:
            self._rollback(conn)
            raise RefreshError(
                f"Failed to record FetchMeta: {e}",
                family=self.family,
                file_name=meta.file_name,
            ) from e
        return True

    def _validate(self, root: Root, meta: FetchMeta):
        if root.family != self.family:
            raise MalformedInputError(
                f"Root family {root.family!r} does not belong to store {self.family!r}"
            )
        if not root.os_version:
            raise MalformedInputError(f"Root for {root.family} has no OS version")
        if not meta.file_name:
            raise MalformedInputError(f"FetchMeta for {root.family} {root.os_version} has no file name")
        if not isinstance(meta.timestamp, datetime):
            raise MalformedInputError(
                f"FetchMeta for {meta.file_name} has no valid timestamp: {meta.timestamp!r}"
            )
        for definition in root.definitions:
            if not definition.definition_id:
                raise MalformedInputError(
                    f"Definition without id in {root.family} {root.os_version}"
                )

    def _rollback(self, conn):
        try:
            conn.rollback()
        except duckdb.Error as e:
            logger.error(f"Rollback failed: {e}")

    def _find_root_ids(self, conn, family: str, os_version: str) -> List[int]:
        rows = conn.execute(
            "SELECT id FROM roots WHERE family = ? AND os_version = ? ORDER BY id",
            [family, os_version],
        ).fetchall()
        return [r[0] for r in rows]

    def _delete_root(self, conn, root_id: int):
        for table, statement in DELETE_ROOT_CLOSURE:
            deleted = conn.execute(statement, [root_id]).fetchone()[0]
            logger.debug(f"  Deleted {deleted} rows from {table} (root {root_id})")

    def _insert_root(self, conn, root: Root) -> int:
        root_id = conn.execute(
            "INSERT INTO roots (family, os_version) VALUES (?, ?) RETURNING id",
            [root.family, root.os_version],
        ).fetchone()[0]

        for definition in root.definitions:
            self._insert_definition(conn, root_id, definition)

        return root_id

    def _insert_definition(self, conn, root_id: int, definition: Definition) -> int:
        def_id = conn.execute("""
            INSERT INTO definitions (root_id, definition_id, title, description, severity)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
        """, [
            root_id,
            definition.definition_id,
            definition.title,
            definition.description,
            definition.severity,
        ]).fetchone()[0]

        if definition.affected_packs:
            conn.executemany("""
                INSERT INTO packages (definition_id, name, version, not_fixed_yet)
                VALUES (?, ?, ?, ?)
            """, [[def_id, p.name, p.version, p.not_fixed_yet] for p in definition.affected_packs])

        if definition.references:
            conn.executemany("""
                INSERT INTO oval_references (definition_id, source, ref_id, ref_url)
                VALUES (?, ?, ?, ?)
            """, [[def_id, r.source, r.ref_id, r.ref_url] for r in definition.references])

        if definition.advisory is not None:
            self._insert_advisory(conn, def_id, definition.advisory)

        if definition.debian is not None:
            deb = definition.debian
            conn.execute("""
                INSERT INTO debians (definition_id, cve_id, more_info, dsa, date)
                VALUES (?, ?, ?, ?, ?)
            """, [def_id, deb.cve_id, deb.more_info, deb.dsa, deb.date])

        return def_id

    def _insert_advisory(self, conn, def_id: int, advisory: Advisory) -> int:
        adv_id = conn.execute("""
            INSERT INTO advisories (definition_id, advisory_id, severity, issued, updated)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
        """, [
            def_id,
            advisory.advisory_id,
            advisory.severity,
            advisory.issued,
            advisory.updated,
        ]).fetchone()[0]

        if advisory.cves:
            conn.executemany("""
                INSERT INTO cves (advisory_id, cve_id, cvss2, cvss3, cwe, href, public)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                [adv_id, c.cve_id, c.cvss2, c.cvss3, c.cwe, c.href, c.public]
                for c in advisory.cves
            ])

        if advisory.bugzillas:
            conn.executemany("""
                INSERT INTO bugzillas (advisory_id, bugzilla_id, url, title)
                VALUES (?, ?, ?, ?)
            """, [[adv_id, b.bugzilla_id, b.url, b.title] for b in advisory.bugzillas])

        if advisory.affected_cpe_list:
            conn.executemany(
                "INSERT INTO cpes (advisory_id, cpe) VALUES (?, ?)",
                [[adv_id, c.cpe] for c in advisory.affected_cpe_list],
            )

        return adv_id

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_pack_name(self, os_major_ver: str, pack_name: str, conn=None) -> List[Definition]:
        """
        Definitions of this family and major version affecting a package.

        Args:
            os_major_ver: Major OS version, e.g. "7"
            pack_name: Exact package name
            conn: Optional alternate connection (read replica, tests)
        """
        conn = conn or self.db.connect()
        try:
            root_ids = self._root_ids_for_major(conn, os_major_ver)
            if not root_ids:
                return []
            rows = _fetch_dicts(conn, f"""
                SELECT DISTINCT {DEFINITION_COLUMNS}
                FROM packages p
                JOIN definitions d ON p.definition_id = d.id
                WHERE p.name = ? AND d.root_id IN ({_placeholders(root_ids)})
                ORDER BY d.id
            """, [pack_name, *root_ids])
            return self._hydrate(conn, rows)
        except duckdb.Error as e:
            raise QueryError(
                f"Failed to get {self.family} {os_major_ver} definitions by package {pack_name}: {e}"
            ) from e

    def get_by_cve_id(self, os_major_ver: str, cve_id: str, conn=None) -> List[Definition]:
        """
        Definitions of this family and major version referencing a CVE.

        Args:
            os_major_ver: Major OS version, e.g. "7"
            cve_id: CVE identifier, e.g. "CVE-2017-0001"
            conn: Optional alternate connection (read replica, tests)
        """
        conn = conn or self.db.connect()
        try:
            root_ids = self._root_ids_for_major(conn, os_major_ver)
            if not root_ids:
                return []
            rows = self._definition_rows_by_cve(conn, root_ids, cve_id)
            return self._hydrate(conn, rows)
        except duckdb.Error as e:
            raise QueryError(
                f"Failed to get {self.family} {os_major_ver} definitions by CVE {cve_id}: {e}"
            ) from e

    def _definition_rows_by_cve(self, conn, root_ids: List[int], cve_id: str) -> List[Dict[str, Any]]:
        return _fetch_dicts(conn, f"""
            SELECT DISTINCT {DEFINITION_COLUMNS}
            FROM cves c
            JOIN advisories a ON c.advisory_id = a.id
            JOIN definitions d ON a.definition_id = d.id
            WHERE c.cve_id = ? AND d.root_id IN ({_placeholders(root_ids)})
            ORDER BY d.id
        """, [cve_id, *root_ids])

    def _root_ids_for_major(self, conn, os_major_ver: str) -> List[int]:
        rows = conn.execute(
            "SELECT id, os_version FROM roots WHERE family = ? ORDER BY id",
            [self.family],
        ).fetchall()
        return [root_id for root_id, os_version in rows if major_version(os_version) == os_major_ver]

    def _fetch_children(self, conn, table: str, parent_column: str, parent_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
        grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        if not parent_ids:
            return grouped
        rows = _fetch_dicts(
            conn,
            f"SELECT * FROM {table} WHERE {parent_column} IN ({_placeholders(parent_ids)}) ORDER BY id",
            list(parent_ids),
        )
        for row in rows:
            grouped[row[parent_column]].append(row)
        return grouped

    def _hydrate(self, conn, rows: List[Dict[str, Any]]) -> List[Definition]:
        """Attach advisory, CVEs, packages, references and auxiliary records."""
        if not rows:
            return []

        def_ids = [r["id"] for r in rows]
        advisories = self._fetch_children(conn, "advisories", "definition_id", def_ids)
        packages = self._fetch_children(conn, "packages", "definition_id", def_ids)
        references = self._fetch_children(conn, "oval_references", "definition_id", def_ids)

        adv_ids = [a["id"] for group in advisories.values() for a in group]
        cves = self._fetch_children(conn, "cves", "advisory_id", adv_ids)
        bugzillas = {}
        cpes = {}
        debians = {}
        if "bugzillas" in self.auxiliary_tables:
            bugzillas = self._fetch_children(conn, "bugzillas", "advisory_id", adv_ids)
        if "cpes" in self.auxiliary_tables:
            cpes = self._fetch_children(conn, "cpes", "advisory_id", adv_ids)
        if "debians" in self.auxiliary_tables:
            debians = self._fetch_children(conn, "debians", "definition_id", def_ids)

        definitions = []
        for row in rows:
            advisory = None
            if advisories.get(row["id"]):
                a = advisories[row["id"]][0]
                advisory = Advisory(
                    advisory_id=a["advisory_id"],
                    severity=a["severity"],
                    issued=a["issued"],
                    updated=a["updated"],
                    cves=[
                        Cve(cve_id=c["cve_id"], cvss2=c["cvss2"], cvss3=c["cvss3"],
                            cwe=c["cwe"], href=c["href"], public=c["public"], id=c["id"])
                        for c in cves.get(a["id"], [])
                    ],
                    bugzillas=[
                        Bugzilla(bugzilla_id=b["bugzilla_id"], url=b["url"], title=b["title"], id=b["id"])
                        for b in bugzillas.get(a["id"], [])
                    ],
                    affected_cpe_list=[Cpe(cpe=c["cpe"], id=c["id"]) for c in cpes.get(a["id"], [])],
                    id=a["id"],
                )

            debian = None
            if debians.get(row["id"]):
                d = debians[row["id"]][0]
                debian = Debian(
                    cve_id=d["cve_id"], more_info=d["more_info"], dsa=d["dsa"], date=d["date"], id=d["id"]
                )

            definitions.append(Definition(
                definition_id=row["definition_id"],
                title=row["title"],
                description=row["description"],
                severity=row["severity"],
                advisory=advisory,
                affected_packs=[
                    Package(name=p["name"], version=p["version"],
                            not_fixed_yet=bool(p["not_fixed_yet"]), id=p["id"])
                    for p in packages.get(row["id"], [])
                ],
                references=[
                    Reference(source=r["source"], ref_id=r["ref_id"], ref_url=r["ref_url"], id=r["id"])
                    for r in references.get(row["id"], [])
                ],
                debian=debian,
                id=row["id"],
                root_id=row["root_id"],
            ))

        return definitions
