"""
SQLite deal store.

Persists per-channel deal records and quiet-hours queue entries. The deal
record's primary key is (channel_id, deal_id), and every write is keyed by
identity, so overlapping scrape cycles for the same channel can never create
a second record or a second notification path.
"""

import sqlite3
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from ..models.deal import DealRecord, QueuedDeal
from ..models.filter import FilterStatus
from ..utils.logging import get_logger

_DEAL_COLUMNS = (
    "channel_id",
    "deal_id",
    "search_term",
    "title",
    "link",
    "price",
    "merchant",
    "match_details",
    "filter_status",
    "filter_reason",
    "notified",
    "timestamp",
    "created_at",
    "expires_at",
)

_QUEUED_COLUMNS = (
    "queued_deal_id",
    "channel_id",
    "deal_id",
    "search_term",
    "title",
    "link",
    "price",
    "merchant",
    "match_details",
    "queued_at",
    "created_at",
    "expires_at",
    "flushed_at",
)


def _placeholders(ids: List[str]) -> str:
    return ", ".join("?" for _ in ids)


class DealStore:
    """SQLite-backed store for deal records and queued deals."""

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self.logger = get_logger("deal.store")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables and indexes if they do not exist.

        Tables:
        - deals: one row per (channel_id, deal_id), passed or filtered
        - queued_deals: deals held back during quiet hours
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS deals (
                    channel_id TEXT NOT NULL,
                    deal_id TEXT NOT NULL,
                    search_term TEXT NOT NULL,
                    title TEXT NOT NULL,
                    link TEXT NOT NULL,
                    price TEXT,
                    merchant TEXT,
                    match_details TEXT,
                    filter_status TEXT NOT NULL DEFAULT 'passed',
                    filter_reason TEXT,
                    notified INTEGER NOT NULL DEFAULT 0,
                    timestamp INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at INTEGER NOT NULL,
                    PRIMARY KEY (channel_id, deal_id)
                )
                """
            )
            # History view for one search term of a channel, newest first
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_deals_channel_search_ts
                ON deals (channel_id, search_term, timestamp DESC)
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS queued_deals (
                    queued_deal_id TEXT PRIMARY KEY,
                    channel_id TEXT NOT NULL,
                    deal_id TEXT NOT NULL,
                    search_term TEXT NOT NULL,
                    title TEXT NOT NULL,
                    link TEXT NOT NULL,
                    price TEXT,
                    merchant TEXT,
                    match_details TEXT,
                    queued_at INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at INTEGER NOT NULL,
                    flushed_at INTEGER
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_queued_channel
                ON queued_deals (channel_id, queued_at)
                """
            )
            # Global ordering so a sweep finds pending work without listing channels
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_queued_all
                ON queued_deals (queued_at, channel_id)
                """
            )
            # At most one pending queue entry per channel per deal
            conn.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS idx_queued_pending_deal
                ON queued_deals (channel_id, deal_id)
                WHERE flushed_at IS NULL
                """
            )

    # Deal records

    def record_deal(self, record: DealRecord) -> bool:
        """
        Insert a deal record unless one already exists for its identity.

        Returns:
            True if this call created the record, False if the deal was
            already recorded for the channel ("already handled").
        """
        record.validate()
        values = (
            record.channel_id,
            record.deal_id,
            record.search_term,
            record.title,
            record.link,
            record.price,
            record.merchant,
            record.match_details,
            record.filter_status.value,
            record.filter_reason,
            int(record.notified),
            record.timestamp,
            record.created_at,
            record.expires_at,
        )
        with self._connect() as conn:
            cur = conn.execute(
                f"""
                INSERT OR IGNORE INTO deals ({", ".join(_DEAL_COLUMNS)})
                VALUES ({_placeholders(list(_DEAL_COLUMNS))})
                """,
                values,
            )
            created = cur.rowcount == 1

        if not created:
            self.logger.debug(
                "Deal already recorded for channel",
                extra={"channel_id": record.channel_id, "deal_id": record.deal_id},
            )
        return created

    def deal_exists(self, channel_id: str, deal_id: str) -> bool:
        """Check whether a deal has been recorded for a channel."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM deals WHERE channel_id = ? AND deal_id = ?",
                (channel_id, deal_id),
            ).fetchone()
        return row is not None

    def get_deal(self, channel_id: str, deal_id: str) -> Optional[DealRecord]:
        """Fetch one deal record by identity."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM deals WHERE channel_id = ? AND deal_id = ?",
                (channel_id, deal_id),
            ).fetchone()
        return self._row_to_deal(row) if row else None

    def mark_notified(self, channel_id: str, deal_ids: Iterable[str]) -> int:
        """Set notified on the given deals of a channel; returns rows updated."""

        ids = list(deal_ids)
        if not ids:
            return 0
        with self._connect() as conn:
            cur = conn.execute(
                f"""
                UPDATE deals SET notified = 1
                WHERE channel_id = ? AND deal_id IN ({_placeholders(ids)})
                """,
                (channel_id, *ids),
            )
            return cur.rowcount

    def get_deals_by_search_term(
        self,
        channel_id: str,
        search_term: str,
        limit: int = 50,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[DealRecord]:
        """Channel history for one search term, newest first.

        start_time and end_time are inclusive epoch-millisecond bounds.
        """

        query = "SELECT * FROM deals WHERE channel_id = ? AND search_term = ?"
        params: list = [channel_id, search_term]
        if start_time is not None:
            query += " AND timestamp >= ?"
            params.append(start_time)
        if end_time is not None:
            query += " AND timestamp <= ?"
            params.append(end_time)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_deal(row) for row in rows]

    # Queued deals

    def enqueue_deal(self, queued: QueuedDeal) -> bool:
        """
        Queue a deal for delivery after quiet hours.

        Returns:
            False if the deal is already pending for the channel.
        """
        queued.validate()
        values = tuple(getattr(queued, column) for column in _QUEUED_COLUMNS)
        with self._connect() as conn:
            cur = conn.execute(
                f"""
                INSERT OR IGNORE INTO queued_deals ({", ".join(_QUEUED_COLUMNS)})
                VALUES ({_placeholders(list(_QUEUED_COLUMNS))})
                """,
                values,
            )
            return cur.rowcount == 1

    def get_queued_deals_for_channel(self, channel_id: str) -> List[QueuedDeal]:
        """Pending queue entries of a channel, oldest first."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM queued_deals
                WHERE channel_id = ? AND flushed_at IS NULL
                ORDER BY queued_at, queued_deal_id
                """,
                (channel_id,),
            ).fetchall()
        return [self._row_to_queued(row) for row in rows]

    def list_channels_with_queued_deals(self) -> List[str]:
        """Channels with queue entries, in order of their oldest entry."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT channel_id, MIN(queued_at) AS oldest FROM queued_deals
                GROUP BY channel_id
                ORDER BY oldest, channel_id
                """
            ).fetchall()
        return [row["channel_id"] for row in rows]

    def mark_queued_flushed(self, queued_deal_ids: Iterable[str], now: Optional[int] = None) -> int:
        """Mark entries as delivered ahead of deleting them."""

        ids = list(queued_deal_ids)
        if not ids:
            return 0
        flushed_at = now if now is not None else int(time.time() * 1000)
        with self._connect() as conn:
            cur = conn.execute(
                f"""
                UPDATE queued_deals SET flushed_at = ?
                WHERE queued_deal_id IN ({_placeholders(ids)})
                """,
                (flushed_at, *ids),
            )
            return cur.rowcount

    def delete_queued_deals(self, queued_deal_ids: Iterable[str]) -> int:
        """Delete queue entries by id."""

        ids = list(queued_deal_ids)
        if not ids:
            return 0
        with self._connect() as conn:
            cur = conn.execute(
                f"DELETE FROM queued_deals WHERE queued_deal_id IN ({_placeholders(ids)})",
                ids,
            )
            return cur.rowcount

    def delete_flushed_queued_deals(self, channel_id: str) -> int:
        """Delete entries already delivered by an interrupted flush."""

        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM queued_deals WHERE channel_id = ? AND flushed_at IS NOT NULL",
                (channel_id,),
            )
            return cur.rowcount

    # Expiry

    def purge_expired(self, now: Optional[float] = None) -> Dict[str, int]:
        """Delete deal records and queue entries past their expiry mark."""

        cutoff = int(now if now is not None else time.time())
        with self._connect() as conn:
            deals = conn.execute(
                "DELETE FROM deals WHERE expires_at <= ?", (cutoff,)
            ).rowcount
            queued = conn.execute(
                "DELETE FROM queued_deals WHERE expires_at <= ?", (cutoff,)
            ).rowcount

        if deals or queued:
            self.logger.info(
                "Purged expired records",
                extra={"deals": deals, "queued_deals": queued},
            )
        return {"deals": deals, "queued_deals": queued}

    @staticmethod
    def _row_to_deal(row: sqlite3.Row) -> DealRecord:
        return DealRecord(
            channel_id=row["channel_id"],
            deal_id=row["deal_id"],
            search_term=row["search_term"],
            title=row["title"],
            link=row["link"],
            price=row["price"],
            merchant=row["merchant"],
            match_details=row["match_details"],
            filter_status=FilterStatus(row["filter_status"]),
            filter_reason=row["filter_reason"],
            notified=bool(row["notified"]),
            timestamp=row["timestamp"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    @staticmethod
    def _row_to_queued(row: sqlite3.Row) -> QueuedDeal:
        return QueuedDeal(**{column: row[column] for column in _QUEUED_COLUMNS})
