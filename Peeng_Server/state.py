import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from .logger import get_logger

log = get_logger("DB")

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS peers (
    peer_id TEXT PRIMARY KEY,
    last_time_check TIMESTAMP,
    active BOOLEAN
);
"""

UPSERT_PEER = """
INSERT INTO peers (peer_id, last_time_check, active)
VALUES (?, ?, ?)
ON CONFLICT(peer_id) DO UPDATE SET
    last_time_check = excluded.last_time_check,
    active = excluded.active
"""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Fixed-width UTC text so that ORDER BY / comparisons on the column are chronological.
def format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIME_FORMAT)


def parse_time(value: str) -> datetime:
    return datetime.strptime(value, TIME_FORMAT).replace(tzinfo=timezone.utc)


@dataclass
class PeerRecord:
    peer_id: str
    last_time_check: Optional[datetime]
    active: bool

    def to_json(self) -> dict:
        return {
            "peer_id": self.peer_id,
            "last_time_check": format_time(self.last_time_check) if self.last_time_check else None,
            "active": self.active,
        }


class PeerStore:
    """
    SQLite table of peer records.

    One connection is shared by the monitor thread and the request threads,
    so every statement runs under a single lock. The lock is only held for the
    statement itself, never across a ping.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn = None

    def open(self):
        with self._lock:
            if self._conn is None:
                self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
                self._conn.row_factory = sqlite3.Row
                self._conn.execute(CREATE_TABLE)
        log.info(f"Database table 'peers' ensured ({self.db_path}).")
        return self

    def close(self):
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _query(self, sql, params=()):
        with self._lock:
            if self._conn is None:
                raise sqlite3.ProgrammingError("peer store is not open")
            return self._conn.execute(sql, params).fetchall()

    def upsert(self, peer_id: str, active: bool, checked_at: Optional[datetime] = None) -> Optional[PeerRecord]:
        """
        Inserts or replaces the record of peer_id. Storage errors are logged and
        reported as None; the caller's ping verdict stands on its own.
        """
        record = PeerRecord(peer_id, checked_at or utc_now(), bool(active))
        try:
            self._query(UPSERT_PEER, (record.peer_id, format_time(record.last_time_check), record.active))
        except sqlite3.Error as e:
            log.error(f"DB upsert error for {peer_id}: {e}")
            return None
        log.info(f"Upserted peer {peer_id} (Active: {record.active}).")
        return record

    def get(self, peer_id: str) -> Optional[PeerRecord]:
        rows = self._query(
            "SELECT peer_id, last_time_check, active FROM peers WHERE peer_id = ?", (peer_id,)
        )
        return self._to_record(rows[0]) if rows else None

    def list_peers(self) -> List[PeerRecord]:
        rows = self._query("SELECT peer_id, last_time_check, active FROM peers ORDER BY last_time_check DESC")
        return [self._to_record(row) for row in rows]

    def count(self) -> int:
        return self._query("SELECT COUNT(*) FROM peers")[0][0]

    def checked_before(self, cutoff: datetime, limit: int, inactive_only: bool = False) -> List[str]:
        """Peer ids last checked strictly before cutoff, oldest first."""
        sql = "SELECT peer_id FROM peers WHERE last_time_check < ?"
        if inactive_only:
            sql += " AND active = 0"
        sql += " ORDER BY last_time_check ASC LIMIT ?"
        rows = self._query(sql, (format_time(cutoff), limit))
        return [row["peer_id"] for row in rows]

    @staticmethod
    def _to_record(row) -> PeerRecord:
        checked = None
        if row["last_time_check"]:
            try:
                checked = parse_time(row["last_time_check"])
            except ValueError:
                log.warning(f"Failed to parse timestamp '{row['last_time_check']}' for peer {row['peer_id']}")
        return PeerRecord(row["peer_id"], checked, bool(row["active"]))
