"""
Snapshot freshness guard keyed by source file name.

Each fetched OVAL file is recorded once in fetch_meta with the generator
timestamp of the snapshot it carried. Seeing the same file name with the
same timestamp again means the snapshot is already stored and the refresh
must be skipped.

Both operations take the caller's connection so that the freshness check
and the refresh it gates run inside one transaction.
"""
from datetime import datetime, timezone
from typing import Optional, Tuple

from .models import FetchMeta


def normalize_timestamp(ts: datetime) -> datetime:
    """Convert to naive UTC, the form DuckDB TIMESTAMP columns hold."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


class FetchMetaGuard:
    """Decides whether an incoming snapshot is newer than the stored one."""

    def lookup(self, conn, file_name: str) -> Optional[Tuple[int, datetime]]:
        """Return (row id, stored timestamp) for a file name, or None."""
        row = conn.execute(
            "SELECT id, snapshot_timestamp FROM fetch_meta WHERE file_name = ?",
            [file_name],
        ).fetchone()
        if row is None:
            return None
        return row[0], row[1]

    def should_skip(self, conn, file_name: str, timestamp: datetime) -> bool:
        """
        True when the stored snapshot for file_name has the same timestamp.

        A missing row or a different timestamp means the refresh proceeds.
        """
        existing = self.lookup(conn, file_name)
        if existing is None:
            return False
        return existing[1] == normalize_timestamp(timestamp)

    def record_fetch(self, conn, meta: FetchMeta) -> int:
        """
        Insert a new fetch_meta row or update the timestamp in place.

        Returns:
            Row id of the fetch_meta record
        """
        ts = normalize_timestamp(meta.timestamp)
        existing = self.lookup(conn, meta.file_name)

        if existing is None:
            row = conn.execute("""
                INSERT INTO fetch_meta (file_name, snapshot_timestamp)
                VALUES (?, ?)
                RETURNING id
            """, [meta.file_name, ts]).fetchone()
            return row[0]

        # file_name is the lookup key and stays as stored
        conn.execute("""
            UPDATE fetch_meta
            SET snapshot_timestamp = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        """, [ts, existing[0]])
        return existing[0]
