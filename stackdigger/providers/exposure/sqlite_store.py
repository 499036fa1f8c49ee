"""SQLite-backed exposure store.

Persists seen containers, referenced track keys and stack history to a local
SQLite database (``data/exposure.db`` by default) using ``aiosqlite`` for
async I/O.  Stacks are stored as JSON payloads; history order is insertion
order (``seq``), newest first.

Every write runs in a single transaction on one connection and is
serialized by an in-process ``asyncio.Lock``, so a commit or deletion either
lands completely (history *and* referenced set) or not at all.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

import aiosqlite
import structlog

from stackdigger.interfaces.exposure_store import IExposureStore
from stackdigger.models.stack import ExposureStats, Stack
from stackdigger.services.reclaim import ReclaimEngine, ReclaimPlan
from stackdigger.utils.errors import ExposureStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/exposure.db")
_DEFAULT_HISTORY_LIMIT = 50

_CREATE_SEEN_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS seen_containers (
    container_id TEXT PRIMARY KEY,
    seen_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_REFERENCED_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS referenced_tracks (
    track_key TEXT PRIMARY KEY
);
"""

_CREATE_STACKS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS stacks (
    seq        INTEGER PRIMARY KEY AUTOINCREMENT,
    stack_id   TEXT    NOT NULL UNIQUE,
    created_at TEXT    NOT NULL,
    payload    TEXT    NOT NULL
);
"""

_INSERT_STACK_SQL = "INSERT INTO stacks (stack_id, created_at, payload) VALUES (?, ?, ?);"
_INSERT_SEEN_SQL = "INSERT OR IGNORE INTO seen_containers (container_id) VALUES (?);"
_INSERT_REFERENCED_SQL = "INSERT OR IGNORE INTO referenced_tracks (track_key) VALUES (?);"
_DELETE_STACK_SQL = "DELETE FROM stacks WHERE stack_id = ?;"
_DELETE_REFERENCED_SQL = "DELETE FROM referenced_tracks WHERE track_key = ?;"
_SELECT_HISTORY_SQL = "SELECT payload FROM stacks ORDER BY seq DESC;"
_SELECT_STACK_SQL = "SELECT payload FROM stacks WHERE stack_id = ?;"


class SQLiteExposureStore(IExposureStore):
    """Durable exposure state in a single SQLite file."""

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        history_limit: int = _DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._db_path = Path(db_path)
        self._history_limit = history_limit
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the three tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_SEEN_TABLE_SQL)
            await db.execute(_CREATE_REFERENCED_TABLE_SQL)
            await db.execute(_CREATE_STACKS_TABLE_SQL)
            await db.commit()
        logger.info("exposure_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_seen_containers(self) -> set[str]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT container_id FROM seen_containers;")
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def get_referenced_tracks(self) -> set[str]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            return await self._read_referenced(db)

    async def get_stack_history(self) -> list[Stack]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            return await self._read_history(db)

    async def get_stack(self, stack_id: str) -> Stack | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_SELECT_STACK_SQL, (stack_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return Stack.model_validate_json(row[0])

    async def get_stats(self) -> ExposureStats:
        async with aiosqlite.connect(str(self._db_path)) as db:
            counts: list[int] = []
            for table in ("seen_containers", "referenced_tracks", "stacks"):
                cursor = await db.execute(f"SELECT COUNT(*) FROM {table};")  # noqa: S608
                row = await cursor.fetchone()
                counts.append(row[0] if row else 0)
        return ExposureStats(
            seen_containers=counts[0],
            referenced_tracks=counts[1],
            stacks_created=counts[2],
        )

    @staticmethod
    async def _read_referenced(db: aiosqlite.Connection) -> set[str]:
        cursor = await db.execute("SELECT track_key FROM referenced_tracks;")
        rows = await cursor.fetchall()
        return {row[0] for row in rows}

    @staticmethod
    async def _read_history(db: aiosqlite.Connection) -> list[Stack]:
        cursor = await db.execute(_SELECT_HISTORY_SQL)
        rows = await cursor.fetchall()
        return [Stack.model_validate_json(row[0]) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def commit_stack(
        self,
        stack: Stack,
        newly_seen_containers: Iterable[str],
        newly_referenced_tracks: Iterable[str],
    ) -> None:
        seen = [(cid,) for cid in dict.fromkeys(newly_seen_containers)]
        referenced = [(key,) for key in dict.fromkeys(newly_referenced_tracks)]

        async with self._write_lock, aiosqlite.connect(str(self._db_path)) as db:
            try:
                await db.execute(
                    _INSERT_STACK_SQL,
                    (stack.id, stack.created_at.isoformat(), stack.model_dump_json()),
                )
            except aiosqlite.IntegrityError as exc:
                raise ExposureStoreError(
                    message=f"Stack {stack.id} already exists",
                    provider_name=self.get_provider_name(),
                ) from exc
            await db.executemany(_INSERT_SEEN_SQL, seen)
            await db.executemany(_INSERT_REFERENCED_SQL, referenced)

            history = await self._read_history(db)
            eviction = ReclaimEngine.plan_eviction(
                history, await self._read_referenced(db), self._history_limit
            )
            if eviction is not None:
                await self._apply_plan(db, eviction)
                logger.info("stack_history_evicted", stack_ids=eviction.removed_stack_ids)

            await db.commit()

        logger.info(
            "stack_committed",
            stack_id=stack.id,
            tracks=len(stack.tracks),
            new_containers=len(seen),
            new_keys=len(referenced),
        )

    async def delete_stack(self, stack_id: str) -> bool:
        async with self._write_lock, aiosqlite.connect(str(self._db_path)) as db:
            plan = ReclaimEngine.plan(
                await self._read_history(db), await self._read_referenced(db), [stack_id]
            )
            if plan is None:
                return False
            await self._apply_plan(db, plan)
            await db.commit()

        logger.info("stack_deleted", stack_id=stack_id, released=len(plan.released_keys))
        return True

    @staticmethod
    async def _apply_plan(db: aiosqlite.Connection, plan: ReclaimPlan) -> None:
        await db.executemany(_DELETE_STACK_SQL, [(sid,) for sid in plan.removed_stack_ids])
        await db.executemany(_DELETE_REFERENCED_SQL, [(key,) for key in plan.released_keys])

    async def mark_containers_seen(self, container_ids: Iterable[str]) -> None:
        rows = [(cid,) for cid in dict.fromkeys(container_ids)]
        async with self._write_lock, aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(_INSERT_SEEN_SQL, rows)
            await db.commit()
        logger.debug("containers_marked_seen", count=len(rows))

    async def clear_all(self) -> None:
        async with self._write_lock, aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("DELETE FROM seen_containers;")
            await db.execute("DELETE FROM referenced_tracks;")
            await db.execute("DELETE FROM stacks;")
            await db.commit()
        logger.info("exposure_cleared", store=self.get_provider_name())

    def get_provider_name(self) -> str:
        return "sqlite_exposure"
