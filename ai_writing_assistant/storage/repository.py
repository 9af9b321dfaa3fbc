"""
Usage ledger backed by SQLite.

Records one row per model invocation and answers the read questions the
quota policy and usage statistics need.
"""

import sqlite3
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from ..core.features import FeatureType
from ..core.log import get_logger
from ..core.pricing import PRICING_TABLE, PricingTable, calculate_cost
from ..core.token_counter import TokenUsage
from .db import DEFAULT_DB_PATH, get_connection
from .models import UsageRecord, UsageStats


logger = get_logger(__name__)

PERIODS = ("day", "week", "month")

_COLUMNS = (
    "user_id, feature_type, model, input_tokens, output_tokens, total_tokens, "
    "response_time_ms, succeeded, timestamp, request_id"
)


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the ai_usage_record table if it doesn't exist.

    The table is an append-only ledger; no UPDATE or DELETE is ever issued.
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ai_usage_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                feature_type TEXT NOT NULL,
                model TEXT NOT NULL,
                input_tokens INTEGER NOT NULL,
                output_tokens INTEGER NOT NULL,
                total_tokens INTEGER NOT NULL,
                response_time_ms INTEGER NOT NULL,
                succeeded INTEGER NOT NULL DEFAULT 1,
                timestamp TEXT NOT NULL,
                request_id TEXT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_usage_user_feature_time
            ON ai_usage_record (user_id, feature_type, timestamp)
        """)
        conn.commit()
    finally:
        conn.close()


def insert_usage_record(record: UsageRecord, db_path: str = DEFAULT_DB_PATH) -> None:
    """Append a single usage record."""
    conn = get_connection(db_path)
    try:
        conn.execute(
            f"INSERT INTO ai_usage_record ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.user_id,
                record.feature_type,
                record.model,
                record.input_tokens,
                record.output_tokens,
                record.total_tokens,
                record.response_time_ms,
                1 if record.succeeded else 0,
                record.timestamp.isoformat(),
                record.request_id,
            ),
        )
        conn.commit()
    finally:
        conn.close()


def _row_to_record(row) -> UsageRecord:
    return UsageRecord(
        user_id=row[0],
        feature_type=row[1],
        model=row[2],
        input_tokens=row[3],
        output_tokens=row[4],
        response_time_ms=row[6],
        succeeded=bool(row[7]),
        timestamp=datetime.fromisoformat(row[8]),
        request_id=row[9],
    )


def fetch_usage_records(
    user_id: str,
    since: Optional[datetime] = None,
    feature_type: Optional[str] = None,
    limit: Optional[int] = None,
    db_path: str = DEFAULT_DB_PATH,
) -> List[UsageRecord]:
    """Fetch a user's records, newest first."""
    conn = get_connection(db_path)
    try:
        query = f"SELECT {_COLUMNS} FROM ai_usage_record WHERE user_id = ?"
        params: list = [user_id]
        if since is not None:
            query += " AND timestamp >= ?"
            params.append(since.isoformat())
        if feature_type:
            query += " AND feature_type = ?"
            params.append(feature_type)
        query += " ORDER BY timestamp DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        cursor = conn.execute(query, params)
        return [_row_to_record(row) for row in cursor.fetchall()]
    finally:
        conn.close()


def period_start(period: str, now: datetime) -> datetime:
    """Start of the reporting window ending at now.

    Raises:
        ValueError: If period is not one of PERIODS
    """
    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    raise ValueError(f"period must be one of: {list(PERIODS)}")


class UsageLedger:
    """Append-only record of model usage per user.

    Args:
        db_path: Path to SQLite database file
        pricing: Price table used for costUSD in statistics
        clock: Returns the current local time
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        pricing: PricingTable = PRICING_TABLE,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db_path = db_path
        self.pricing = pricing
        self.clock = clock

    def initialize(self) -> None:
        initialize_schema(self.db_path)

    def record(
        self,
        user_id: str,
        feature: FeatureType,
        model: str,
        input_tokens: int,
        output_tokens: int,
        response_time_ms: int,
        succeeded: bool = True,
        request_id: Optional[str] = None,
    ) -> bool:
        """Append a usage record, best effort.

        Storage failures are logged and swallowed so they never fail the
        feature request that incurred the usage.

        Returns:
            True if the record was written
        """
        record = UsageRecord(
            user_id=user_id,
            feature_type=feature.value,
            model=model,
            input_tokens=max(0, int(input_tokens or 0)),
            output_tokens=max(0, int(output_tokens or 0)),
            response_time_ms=max(0, int(response_time_ms or 0)),
            timestamp=self.clock(),
            succeeded=succeeded,
            request_id=request_id,
        )
        try:
            insert_usage_record(record, self.db_path)
        except (sqlite3.Error, OSError) as e:
            logger.error(
                "event=usage.record_failed | user_id=%s | feature=%s | error=%s",
                user_id, feature.value, e,
            )
            return False
        logger.info(
            "event=usage.recorded | user_id=%s | feature=%s | input_tokens=%s | output_tokens=%s | response_ms=%s",
            user_id, feature.value, record.input_tokens, record.output_tokens, record.response_time_ms,
        )
        return True

    def count_today(self, user_id: str, feature: FeatureType) -> int:
        """Number of records for (user, feature) since local midnight."""
        since = period_start("day", self.clock())
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM ai_usage_record "
                "WHERE user_id = ? AND feature_type = ? AND timestamp >= ?",
                (user_id, feature.value, since.isoformat()),
            )
            return int(cursor.fetchone()[0] or 0)
        finally:
            conn.close()

    def get_stats(self, user_id: str, period: str = "day") -> UsageStats:
        """Aggregate a user's records within the period window.

        Raises:
            ValueError: If period is unknown
        """
        since = period_start(period, self.clock())
        records = fetch_usage_records(user_id, since=since, db_path=self.db_path)

        stats = UsageStats()
        cost = Decimal("0")
        unpriced = set()
        for record in records:
            stats.total_requests += 1
            stats.total_tokens += record.total_tokens
            stats.features[record.feature_type] = stats.features.get(record.feature_type, 0) + 1
            # Records from a model no longer in the price table count at zero cost
            if not self.pricing.supports(record.model):
                unpriced.add(record.model)
                continue
            cost += calculate_cost(
                record.model,
                TokenUsage(record.input_tokens, record.output_tokens),
                self.pricing,
            )
        if unpriced:
            logger.warning(
                "event=usage.unpriced_models | user_id=%s | period=%s | models=%s",
                user_id, period, sorted(unpriced),
            )
        stats.cost_usd = float(cost)
        return stats

    def fetch_recent(self, user_id: str, limit: int = 20) -> List[UsageRecord]:
        return fetch_usage_records(user_id, limit=limit, db_path=self.db_path)
