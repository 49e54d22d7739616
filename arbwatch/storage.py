# arbwatch/storage.py
"""
SQLite persistence for detected arbitrage opportunities.
Append-only: rows are inserted and committed, never updated or deleted.
"""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union

from arbwatch.exceptions import StoreError

logger = logging.getLogger(__name__)

TABLE_NAME = "arbitrage_opportunities"

SCHEMA = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        buy_dex TEXT,
        sell_dex TEXT,
        profit_usdc REAL,
        timestamp TEXT
    )
"""


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """A detected opportunity; id is assigned by the store on insert"""
    buy_dex: str
    sell_dex: str
    profit_usdc: Decimal
    timestamp: str
    id: Optional[int] = None

    @property
    def detected_at(self) -> datetime:
        return datetime.fromisoformat(self.timestamp)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """RFC 3339 timestamp in UTC"""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    return now.astimezone(timezone.utc).isoformat()


class OpportunityStore:
    """SQLite-backed opportunity log"""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.connection: Optional[sqlite3.Connection] = None

    def initialize(self) -> None:
        """Open the database file and create the table if missing"""
        try:
            self.connection = sqlite3.connect(self.db_path)
            with self.connection:
                self.connection.execute(SCHEMA)
        except sqlite3.Error as e:
            self.close()
            raise StoreError(f"Cannot open database {self.db_path}: {e}") from e

        logger.info(f"Database ready: {self.db_path} (table {TABLE_NAME})")

    def insert(self, opportunity: ArbitrageOpportunity) -> int:
        """
        Insert one opportunity and commit before returning its row id.
        Raises StoreError on any database failure.
        """
        if self.connection is None:
            raise StoreError("Store is not initialized")

        try:
            with self.connection:
                cursor = self.connection.execute(
                    f"INSERT INTO {TABLE_NAME} (buy_dex, sell_dex, profit_usdc, timestamp) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        opportunity.buy_dex,
                        opportunity.sell_dex,
                        float(opportunity.profit_usdc),
                        opportunity.timestamp,
                    ),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert opportunity: {e}") from e

        return cursor.lastrowid

    def fetch_all(self) -> List[ArbitrageOpportunity]:
        """All stored opportunities in insertion order"""
        return self._select(f"SELECT id, buy_dex, sell_dex, profit_usdc, timestamp FROM {TABLE_NAME} ORDER BY id")

    def get(self, opportunity_id: int) -> Optional[ArbitrageOpportunity]:
        rows = self._select(
            f"SELECT id, buy_dex, sell_dex, profit_usdc, timestamp FROM {TABLE_NAME} WHERE id = ?",
            (opportunity_id,),
        )
        return rows[0] if rows else None

    def _select(self, query: str, params: tuple = ()) -> List[ArbitrageOpportunity]:
        if self.connection is None:
            raise StoreError("Store is not initialized")
        try:
            rows = self.connection.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read opportunities: {e}") from e

        return [
            ArbitrageOpportunity(
                id=row[0],
                buy_dex=row[1],
                sell_dex=row[2],
                profit_usdc=Decimal(str(row[3])),
                timestamp=row[4],
            )
            for row in rows
        ]

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def __enter__(self) -> "OpportunityStore":
        if self.connection is None:
            self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

