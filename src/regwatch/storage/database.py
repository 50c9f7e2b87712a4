"""PostgreSQL persistence for the compliance pipeline using raw asyncpg.

Deduplication relies on the store's unique constraints rather than on
read-then-write checks: a duplicate insert is a no-op, so two overlapping
sync runs can never create two rows for the same source URL or code.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from importlib import resources
from typing import Any, cast

import asyncpg
import orjson

from regwatch.core.exceptions import StoreUnavailableError
from regwatch.core.logging import get_logger
from regwatch.processing.models import (
    Alert,
    CodeDefinition,
    CodeUpsertOutcome,
    PolicyUpdate,
    Severity,
    SyncLogEntry,
    SyncResult,
    SyncSource,
)

logger = get_logger(__name__)

PING_TIMEOUT_SECONDS = 5.0

# Errors that mean the store cannot be reached, as opposed to a bad query
STORE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
    StoreUnavailableError,
)


def _jsonb(value: Any) -> str | None:
    if value is None:
        return None
    return orjson.dumps(value).decode("utf-8")


def _row_to_policy_update(row: asyncpg.Record) -> PolicyUpdate:
    return PolicyUpdate(
        id=row["id"],
        source=SyncSource(row["source"]),
        title=row["title"],
        summary=row["summary"] or "",
        category=row["category"] or "",
        source_url=row["source_url"],
        published_at=row["published_at"],
        effective_at=row["effective_at"],
        is_read=row["is_read"],
        created_at=row["created_at"],
    )


def _row_to_code(row: asyncpg.Record) -> CodeDefinition:
    return CodeDefinition(
        code=row["code"],
        description=row["description"],
        category=row["category"] or "",
        min_duration_min=row["min_duration_min"],
        max_duration_min=row["max_duration_min"],
        is_active=row["is_active"],
        last_verified_at=row["last_verified_at"],
        source_url=row["source_url"],
    )


def _row_to_alert(row: asyncpg.Record) -> Alert:
    jurisdictions = row["affected_jurisdictions"]
    if isinstance(jurisdictions, str):
        jurisdictions = orjson.loads(jurisdictions)
    return Alert(
        id=row["id"],
        source=SyncSource(row["source"]),
        severity=Severity(row["severity"]),
        category=row["category"],
        title=row["title"],
        description=row["description"],
        affected_jurisdictions=jurisdictions,
        source_url=row["source_url"],
        effective_at=row["effective_at"],
        dismissed_at=row["dismissed_at"],
        dismissed_by=row["dismissed_by"],
        created_at=row["created_at"],
    )


def _row_to_sync_log(row: asyncpg.Record) -> SyncLogEntry:
    return SyncLogEntry(
        id=row["id"],
        source=SyncSource(row["source"]),
        sync_type=row["sync_type"],
        status=row["status"],
        records_checked=row["records_checked"],
        records_updated=row["records_updated"],
        changes_detected=row["changes_detected"],
        error_message=row["error_message"],
        synced_at=row["synced_at"],
    )


class Database:
    """Async PostgreSQL database wrapper using asyncpg."""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None

    async def connect(self) -> None:
        """Create connection pool."""
        # Convert SQLAlchemy-style DSN to asyncpg format
        dsn = self._dsn.replace("postgresql+asyncpg://", "postgresql://")

        async def init_connection(conn: asyncpg.Connection[asyncpg.Record]) -> None:
            await conn.execute("SET search_path TO regwatch, public")

        self._pool = await asyncpg.create_pool(
            dsn,
            min_size=self._min_size,
            max_size=self._max_size,
            init=init_connection,
        )
        logger.debug("Database pool created", min_size=self._min_size, max_size=self._max_size)

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.debug("Database pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection from the pool."""
        if not self._pool:
            raise StoreUnavailableError("Database not connected. Call connect() first.")
        async with self._pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query and return status."""
        async with self.acquire() as conn:
            result = await conn.execute(query, *args)
            return cast(str, result)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Fetch multiple rows."""
        async with self.acquire() as conn:
            result = await conn.fetch(query, *args)
            return list(result)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def ping(self) -> bool:
        """Return True if the store answers a trivial query.

        A store with no pool (unreachable at startup, or dropped after a failed
        schema apply) is connected here, so a later run recovers on its own.
        """
        try:
            if not self._pool:
                await self._reconnect()
            return await asyncio.wait_for(self.fetchval("SELECT 1"), PING_TIMEOUT_SECONDS) == 1
        except STORE_ERRORS as e:
            logger.warning("Database ping failed", error=str(e))
            return False

    async def _reconnect(self) -> None:
        await asyncio.wait_for(self.connect(), PING_TIMEOUT_SECONDS)
        try:
            await self.apply_schema()
        except STORE_ERRORS:
            await self.disconnect()
            raise
        logger.info("Database reconnected")

    async def apply_schema(self) -> None:
        """Create the regwatch schema and tables if they do not exist."""
        ddl = resources.files("regwatch.storage").joinpath("schema.sql").read_text("utf-8")
        await self.execute(ddl)
        logger.info("Database schema applied")

    # -------------------------------------------------------------------------
    # Policy updates (dedup key: source_url)
    # -------------------------------------------------------------------------

    async def has_seen_policy_url(self, url: str) -> bool:
        result = await self.fetchval(
            "SELECT EXISTS (SELECT 1 FROM policy_updates WHERE source_url = $1)", url
        )
        return bool(result)

    async def insert_policy_update_if_new(self, update: PolicyUpdate) -> bool:
        """Insert a policy update unless its source URL is already stored.

        Returns:
            True if a row was inserted, False if the URL was already known
        """
        query = """
            INSERT INTO policy_updates (
                source, title, summary, category, source_url,
                published_at, effective_at, is_read
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            ON CONFLICT (source_url) DO NOTHING
            RETURNING id
        """
        new_id = await self.fetchval(
            query,
            update.source.value,
            update.title,
            update.summary,
            update.category,
            update.source_url,
            update.published_at,
            update.effective_at,
            update.is_read,
        )
        if new_id is None:
            logger.debug("Policy update already stored", source_url=update.source_url)
            return False
        logger.debug("Policy update inserted", id=new_id, source=update.source.value)
        return True

    async def get_recent_policy_updates(self, limit: int = 30) -> list[PolicyUpdate]:
        rows = await self.fetch(
            "SELECT * FROM policy_updates ORDER BY published_at DESC, id DESC LIMIT $1", limit
        )
        return [_row_to_policy_update(row) for row in rows]

    async def mark_policy_update_read(self, update_id: int) -> bool:
        result = await self.fetchval(
            "UPDATE policy_updates SET is_read = TRUE WHERE id = $1 RETURNING id", update_id
        )
        return result is not None

    # -------------------------------------------------------------------------
    # Procedure-code registry (dedup key: code)
    # -------------------------------------------------------------------------

    async def get_code(self, code: str) -> CodeDefinition | None:
        row = await self.fetchrow("SELECT * FROM code_definitions WHERE code = $1", code)
        return _row_to_code(row) if row else None

    async def upsert_code(
        self,
        definition: CodeDefinition,
        verified_at: datetime | None = None,
    ) -> tuple[CodeUpsertOutcome, CodeDefinition | None]:
        """Reconcile one canonical code definition with the stored row.

        Returns:
            The outcome and, for updates, the row as it was before the change
        """
        verified_at = verified_at or datetime.now(timezone.utc)

        async with self.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT * FROM code_definitions WHERE code = $1 FOR UPDATE", definition.code
                )
                if row is None:
                    inserted = await conn.fetchval(
                        """
                        INSERT INTO code_definitions (
                            code, description, category, min_duration_min, max_duration_min,
                            is_active, last_verified_at, source_url
                        )
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                        ON CONFLICT (code) DO NOTHING
                        RETURNING code
                        """,
                        definition.code,
                        definition.description,
                        definition.category,
                        definition.min_duration_min,
                        definition.max_duration_min,
                        definition.is_active,
                        verified_at,
                        definition.source_url,
                    )
                    if inserted is not None:
                        return CodeUpsertOutcome.inserted, None
                    # Lost an insert race; reconcile against the winner's row
                    row = await conn.fetchrow(
                        "SELECT * FROM code_definitions WHERE code = $1 FOR UPDATE",
                        definition.code,
                    )
                    if row is None:
                        raise RuntimeError(f"Code {definition.code} vanished during upsert")

                previous = _row_to_code(row)
                if definition.differs_from(previous):
                    await conn.execute(
                        """
                        UPDATE code_definitions
                        SET description = $2, min_duration_min = $3, max_duration_min = $4,
                            last_verified_at = $5, updated_at = NOW()
                        WHERE code = $1
                        """,
                        definition.code,
                        definition.description,
                        definition.min_duration_min,
                        definition.max_duration_min,
                        verified_at,
                    )
                    return CodeUpsertOutcome.updated, previous

                await conn.execute(
                    "UPDATE code_definitions SET last_verified_at = $2 WHERE code = $1",
                    definition.code,
                    verified_at,
                )
                return CodeUpsertOutcome.unchanged, previous

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    async def insert_alert(self, alert: Alert) -> int:
        query = """
            INSERT INTO compliance_alerts (
                source, severity, category, title, description,
                affected_jurisdictions, source_url, effective_at
            )
            VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8)
            RETURNING id
        """
        alert_id = await self.fetchval(
            query,
            alert.source.value,
            alert.severity.value,
            alert.category,
            alert.title,
            alert.description,
            _jsonb(alert.affected_jurisdictions),
            alert.source_url,
            alert.effective_at,
        )
        logger.debug(
            "Alert inserted",
            id=alert_id,
            severity=alert.severity.value,
            category=alert.category,
        )
        return cast(int, alert_id)

    async def has_active_alert(self, category: str) -> bool:
        result = await self.fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM compliance_alerts
                WHERE category = $1 AND dismissed_at IS NULL
            )
            """,
            category,
        )
        return bool(result)

    async def get_active_alerts(self, limit: int = 50) -> list[Alert]:
        rows = await self.fetch(
            """
            SELECT * FROM compliance_alerts
            WHERE dismissed_at IS NULL
            ORDER BY created_at DESC, id DESC
            LIMIT $1
            """,
            limit,
        )
        return [_row_to_alert(row) for row in rows]

    async def dismiss_alert(self, alert_id: int, admin_id: str) -> bool:
        """Dismiss an alert. Re-dismissing keeps the original dismissal.

        Returns:
            False if no alert with that id exists
        """
        result = await self.fetchval(
            """
            UPDATE compliance_alerts
            SET dismissed_at = COALESCE(dismissed_at, NOW()),
                dismissed_by = CASE WHEN dismissed_at IS NULL THEN $2 ELSE dismissed_by END
            WHERE id = $1
            RETURNING id
            """,
            alert_id,
            admin_id,
        )
        if result is not None:
            logger.info("Alert dismissed", alert_id=alert_id, admin_id=admin_id)
        return result is not None

    # -------------------------------------------------------------------------
    # Sync log (append-only)
    # -------------------------------------------------------------------------

    async def insert_sync_log(self, result: SyncResult) -> None:
        await self.execute(
            """
            INSERT INTO sync_log (
                source, sync_type, status, records_checked,
                records_updated, changes_detected, error_message
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            result.source.value,
            result.sync_type,
            result.status.value,
            result.records_checked,
            result.records_updated,
            result.changes_detected,
            result.error_message,
        )

    async def get_recent_sync_logs(self, limit: int = 20) -> list[SyncLogEntry]:
        rows = await self.fetch(
            "SELECT * FROM sync_log ORDER BY synced_at DESC, id DESC LIMIT $1", limit
        )
        return [_row_to_sync_log(row) for row in rows]

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------

    async def get_summary_counts(self) -> dict[str, Any]:
        """Counts backing the admin summary view."""
        row = await self.fetchrow(
            """
            SELECT
                COUNT(*) FILTER (WHERE severity = 'critical') AS critical_alerts,
                COUNT(*) FILTER (WHERE severity = 'warning') AS warning_alerts,
                COUNT(*) AS total_active_alerts,
                (SELECT COUNT(*) FROM policy_updates WHERE NOT is_read) AS unread_policy_updates,
                (SELECT MAX(synced_at) FROM sync_log) AS last_sync_at
            FROM compliance_alerts
            WHERE dismissed_at IS NULL
            """
        )
        if row is None:
            return {}
        return dict(row)


# Global database instance (initialized in lifespan)
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise StoreUnavailableError("Database not initialized")
    return _db


async def init_database(dsn: str) -> Database:
    """Initialize the global database instance."""
    global _db
    _db = Database(dsn)
    await _db.connect()
    return _db


async def close_database() -> None:
    """Close the global database instance."""
    global _db
    if _db:
        await _db.disconnect()
        _db = None
