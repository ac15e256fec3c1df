"""
Debian OVAL store.

Debian definitions are one-per-CVE and carry a `debians` record holding
the CVE id directly, so the CVE lookup starts from that column instead of
walking cves -> advisories -> definitions.
"""
from typing import Any, Dict, List

from . import families
from .oval_store import DEFINITION_COLUMNS, OvalStore, _fetch_dicts, _placeholders


class DebianStore(OvalStore):
    """Stores and queries Debian OVAL definitions."""

    family = families.DEBIAN
    auxiliary_tables = ("debians",)

    def _definition_rows_by_cve(self, conn, root_ids: List[int], cve_id: str) -> List[Dict[str, Any]]:
        return _fetch_dicts(conn, f"""
            SELECT DISTINCT {DEFINITION_COLUMNS}
            FROM debians deb
            JOIN definitions d ON deb.definition_id = d.id
            WHERE deb.cve_id = ? AND d.root_id IN ({_placeholders(root_ids)})
            ORDER BY d.id
        """, [cve_id, *root_ids])
