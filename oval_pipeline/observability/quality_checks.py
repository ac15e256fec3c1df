"""
Data quality checks for the stored OVAL closure.

QualityChecker runs SQL checks after each refresh run:
- One Root per (family, os_version)
- No orphans: definitions without a root, packages/references/advisories
  without a definition, cves without an advisory
- CVE ids match CVE-YYYY-NNNN+
- One fetch_meta row per file name

Design decisions:
- Each check returns a QualityCheckResult with pass/fail and details
- Checks are SQL-based and run against the live database
- Orphan checks are table-driven so new child tables only add a row
"""
from dataclasses import dataclass
from typing import Any, Dict, List

# (check name, child table, child column, parent table)
ORPHAN_CHECKS = [
    ("no_orphan_definitions", "definitions", "root_id", "roots"),
    ("no_orphan_packages", "packages", "definition_id", "definitions"),
    ("no_orphan_references", "oval_references", "definition_id", "definitions"),
    ("no_orphan_advisories", "advisories", "definition_id", "definitions"),
    ("no_orphan_cves", "cves", "advisory_id", "advisories"),
    ("no_orphan_bugzillas", "bugzillas", "advisory_id", "advisories"),
    ("no_orphan_cpes", "cpes", "advisory_id", "advisories"),
    ("no_orphan_debians", "debians", "definition_id", "definitions"),
]


@dataclass
class QualityCheckResult:
    """
    Result of a single quality check.

    Attributes:
        check_name: Unique identifier for the check
        passed: True if check passed, False otherwise
        message: Human-readable summary of the result
        details: Optional dict with additional context (e.g., counts)
    """
    check_name: str
    passed: bool
    message: str
    details: Dict[str, Any] = None


class QualityChecker:
    """Runs data quality checks against the OVAL tables."""

    def __init__(self, database):
        """
        Args:
            database: Database instance with initialized schema
        """
        self.db = database

    def run_all_checks(self) -> List[QualityCheckResult]:
        results = [self.check_single_root_per_version()]
        for check_name, child, column, parent in ORPHAN_CHECKS:
            results.append(self.check_orphans(check_name, child, column, parent))
        results.append(self.check_cve_format())
        results.append(self.check_unique_fetch_meta())
        return results

    def check_single_root_per_version(self) -> QualityCheckResult:
        """A refresh must replace, never accumulate, Roots for a pair."""
        conn = self.db.connect()
        result = conn.execute("""
            SELECT count(*) FROM (
                SELECT family, os_version FROM roots
                GROUP BY family, os_version
                HAVING count(*) > 1
            )
        """).fetchone()[0]

        return QualityCheckResult(
            check_name="single_root_per_version",
            passed=result == 0,
            message=f"{result} (family, version) pairs with duplicate roots" if result > 0 else "One root per family/version",
            details={"duplicate_count": result}
        )

    def check_orphans(self, check_name: str, child: str, column: str, parent: str) -> QualityCheckResult:
        conn = self.db.connect()
        result = conn.execute(f"""
            SELECT count(*) FROM {child} c
            WHERE NOT EXISTS (SELECT 1 FROM {parent} p WHERE p.id = c.{column})
        """).fetchone()[0]

        return QualityCheckResult(
            check_name=check_name,
            passed=result == 0,
            message=f"{result} orphaned rows in {child}" if result > 0 else f"No orphaned {child}",
            details={"orphan_count": result}
        )

    def check_cve_format(self) -> QualityCheckResult:
        """
        Check that all CVE IDs match the expected format: CVE-YYYY-NNNN+.

        Uses SQL SIMILAR TO (regex) for format validation.
        """
        conn = self.db.connect()
        result = conn.execute("""
            SELECT count(*) FROM cves
            WHERE cve_id NOT SIMILAR TO 'CVE-[0-9]{4}-[0-9]{4,}'
        """).fetchone()[0]

        return QualityCheckResult(
            check_name="cve_format",
            passed=result == 0,
            message=f"{result} invalid CVE formats" if result > 0 else "All CVE IDs valid",
            details={"invalid_count": result}
        )

    def check_unique_fetch_meta(self) -> QualityCheckResult:
        conn = self.db.connect()
        result = conn.execute("""
            SELECT count(*) FROM (
                SELECT file_name FROM fetch_meta
                GROUP BY file_name
                HAVING count(*) > 1
            )
        """).fetchone()[0]

        return QualityCheckResult(
            check_name="unique_fetch_meta",
            passed=result == 0,
            message=f"{result} file names recorded more than once" if result > 0 else "One fetch record per file",
            details={"duplicate_count": result}
        )
