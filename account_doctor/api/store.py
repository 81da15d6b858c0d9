"""SQLite audit store and the 24h cache-or-fetch wrapper around a provider."""
import asyncio
import json
import logging
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import aiosqlite

from account_doctor.models import AuditResult, ProfileSnapshot
from account_doctor.platforms.base import ProfileProvider
from account_doctor.utils.patterns import as_utc

_log = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24


def cache_ttl() -> timedelta:
    return timedelta(hours=float(os.getenv("CACHE_TTL_HOURS", DEFAULT_TTL_HOURS)))


def expires_at(now: datetime) -> datetime:
    return as_utc(now) + cache_ttl()


def is_cache_expired(created_at: datetime, now: datetime) -> bool:
    return as_utc(now) - as_utc(created_at) >= cache_ttl()


def _to_ms(dt: datetime) -> int:
    return int(as_utc(dt).timestamp() * 1000)


def _from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


async def init_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS audits (
                audit_id       TEXT PRIMARY KEY,
                username       TEXT NOT NULL,
                snapshot_json  TEXT NOT NULL,
                result_json    TEXT NOT NULL,
                diagnosis_json TEXT,
                created_at     INTEGER NOT NULL,
                expires_at     INTEGER NOT NULL
            )
        """)
        await db.execute(
            "CREATE INDEX IF NOT EXISTS audits_username_created ON audits (username, created_at)"
        )
        await db.commit()


def _row_to_record(row: tuple) -> dict[str, Any]:
    return {
        "audit_id": row[0],
        "username": row[1],
        "snapshot": ProfileSnapshot.model_validate_json(row[2]),
        "audit": AuditResult.model_validate_json(row[3]),
        "diagnosis": json.loads(row[4]) if row[4] else None,
        "created_at": _from_ms(row[5]),
        "expires_at": _from_ms(row[6]),
    }


_SELECT = """SELECT audit_id, username, snapshot_json, result_json, diagnosis_json,
                    created_at, expires_at FROM audits"""


async def save_audit(
    db_path: str,
    username: str,
    snapshot: ProfileSnapshot,
    audit: AuditResult,
    now: datetime,
) -> dict[str, Any]:
    audit_id = str(uuid.uuid4())
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """INSERT INTO audits
               (audit_id, username, snapshot_json, result_json, created_at, expires_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                audit_id,
                username,
                snapshot.model_dump_json(),
                audit.model_dump_json(),
                _to_ms(now),
                _to_ms(expires_at(now)),
            ),
        )
        await db.commit()
    _log.info("saved audit %s for @%s", audit_id, username)
    return {
        "audit_id": audit_id,
        "username": username,
        "snapshot": snapshot,
        "audit": audit,
        "diagnosis": None,
        "created_at": as_utc(now),
        "expires_at": expires_at(now),
    }


async def load_audit(db_path: str, audit_id: str) -> Optional[dict[str, Any]]:
    async with aiosqlite.connect(db_path) as db:
        async with db.execute(f"{_SELECT} WHERE audit_id = ?", (audit_id,)) as cursor:
            row = await cursor.fetchone()
    return _row_to_record(row) if row else None


async def find_fresh_audit(db_path: str, username: str, now: datetime) -> Optional[dict[str, Any]]:
    """Newest unexpired audit for `username`, if any."""
    async with aiosqlite.connect(db_path) as db:
        async with db.execute(
            f"{_SELECT} WHERE username = ? AND expires_at > ? ORDER BY created_at DESC LIMIT 1",
            (username, _to_ms(now)),
        ) as cursor:
            row = await cursor.fetchone()
    return _row_to_record(row) if row else None


async def save_diagnosis(db_path: str, audit_id: str, diagnosis: dict[str, Any]) -> bool:
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            "UPDATE audits SET diagnosis_json = ? WHERE audit_id = ?",
            (json.dumps(diagnosis, ensure_ascii=False), audit_id),
        )
        if cursor.rowcount == 0:
            return False
        await db.commit()
    return True


async def get_cached_or_fetch(
    db_path: str,
    username: str,
    provider: ProfileProvider,
    now: datetime,
    skip_cache: bool = False,
) -> tuple[Optional[dict[str, Any]], ProfileSnapshot]:
    """Return (cached record or None, snapshot).

    On a cache hit the stored snapshot is reused; on a miss the provider is
    called and nothing is written, the caller scores and saves.
    """
    if skip_cache:
        _log.info("[cache] skipped for @%s (forced refresh)", username)
    else:
        cached = await find_fresh_audit(db_path, username, now)
        if cached:
            _log.info("[cache] hit for @%s from %s", username, cached["created_at"].isoformat())
            return cached, cached["snapshot"]
        _log.info("[cache] miss for @%s", username)

    snapshot = await asyncio.to_thread(provider.fetch_snapshot, username)
    return None, snapshot
