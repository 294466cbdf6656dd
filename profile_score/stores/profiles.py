"""Profile record store: the population the ranking engine compares against.

One record per handle, last write wins. Two backends:
- JSON file (default): whole population rewritten on every upsert via temp
  file + atomic rename, serialized by an asyncio lock
- PostgreSQL: one row per handle, upsert via INSERT ... ON CONFLICT

Both backends fail soft. Storage problems never reach the caller:
- load() returns [] when the medium is missing/corrupt/unreachable
- upsert() logs and drops the write

No ranking logic here - that belongs in services/ranking.py.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from profile_score.models import ProfileRecordRow
from profile_score.schemas.profile import ProfileRecord
from profile_score.settings import get_settings
from profile_score.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


class StorageUnavailable(RuntimeError):
    """The backing medium could not be read or written."""


class ProfileStore(Protocol):
    async def load(self) -> list[ProfileRecord]: ...

    async def upsert(self, record: ProfileRecord) -> None: ...


def merge_record(profiles: list[ProfileRecord], record: ProfileRecord) -> list[ProfileRecord]:
    """Replace the record with the same handle, or append it."""
    merged = list(profiles)
    for i, existing in enumerate(merged):
        if existing.handle == record.handle:
            merged[i] = record
            return merged
    merged.append(record)
    return merged


def parse_profiles(payload: Any, source: str = "") -> list[ProfileRecord]:
    """Parse a JSON array of profile objects.

    Entries that fail validation are skipped (logged); a payload that is not
    an array is treated as corruption.
    """
    if not isinstance(payload, list):
        raise StorageUnavailable(f"Expected a JSON array in {source or 'profile store'}")

    profiles: list[ProfileRecord] = []
    for i, item in enumerate(payload):
        try:
            profiles.append(ProfileRecord.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping invalid profile entry #{i} in {source}: {e.error_count()} errors")
    return profiles


# ============================================================
# JSON file backend
# ============================================================


class JsonFileProfileStore:
    """Population persisted as a single JSON array file.

    If the file does not exist yet, reads fall back to `seed_path` (a
    read-only bundled population) and then to an empty population. The first
    upsert materializes the file. An unreadable file is also served from the
    seed on load, but is never overwritten by upsert.
    """

    def __init__(self, path: str | Path, seed_path: str | Path | None = None) -> None:
        self.path = Path(path)
        self.seed_path = Path(seed_path) if seed_path else None
        self._lock = asyncio.Lock()

    async def load(self) -> list[ProfileRecord]:
        try:
            return await asyncio.to_thread(self._read_all, True)
        except StorageUnavailable as e:
            logger.warning(f"Profile store unavailable, ranking without data: {e}")
            return []

    async def upsert(self, record: ProfileRecord) -> None:
        async with self._lock:
            try:
                # No seed fallback here: a corrupt file must not be replaced
                # by seed + record.
                profiles = await asyncio.to_thread(self._read_all, False)
            except StorageUnavailable as e:
                # Rewriting now would clobber whatever is in the file.
                logger.error(f"Not saving profile {record.handle}: store unreadable: {e}")
                return

            merged = merge_record(profiles, record)
            try:
                await asyncio.to_thread(self._write_all, merged)
            except StorageUnavailable as e:
                logger.error(f"Failed to save profile {record.handle} (filesystem might be readonly): {e}")
                return

        logger.info(f"Saved profile {record.handle} ({len(merged)} profiles in store)")

    def _has_seed(self) -> bool:
        return self.seed_path is not None and self.seed_path.exists()

    def _read_all(self, seed_on_error: bool) -> list[ProfileRecord]:
        if not self.path.exists():
            return self._read_file(self.seed_path) if self._has_seed() else []

        try:
            return self._read_file(self.path)
        except StorageUnavailable as e:
            if not seed_on_error or not self._has_seed():
                raise
            logger.warning(f"{e}; falling back to seed population {self.seed_path}")
            return self._read_file(self.seed_path)

    @staticmethod
    def _read_file(source: Path) -> list[ProfileRecord]:
        try:
            with open(source, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageUnavailable(f"Cannot read {source}: {e}") from e

        return parse_profiles(payload, source=str(source))

    def _write_all(self, profiles: list[ProfileRecord]) -> None:
        data = [p.to_json_dict() for p in profiles]
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning(f"Could not remove temp file {tmp_name}")


# ============================================================
# PostgreSQL backend
# ============================================================


def build_upsert_statement(record: ProfileRecord):
    """INSERT ... ON CONFLICT (handle) DO UPDATE for a single record."""
    stmt = pg_insert(ProfileRecordRow).values(
        handle=record.handle,
        followers=record.followers,
        posts=record.posts,
        overall_score=record.overall_score,
        criteria=record.criteria,
        analyzed_at=record.timestamp,
    )
    return stmt.on_conflict_do_update(
        index_elements=[ProfileRecordRow.handle],
        set_={
            "followers": stmt.excluded.followers,
            "posts": stmt.excluded.posts,
            "overall_score": stmt.excluded.overall_score,
            "criteria": stmt.excluded.criteria,
            "analyzed_at": stmt.excluded.analyzed_at,
        },
    )


class PostgresProfileStore:
    """Population stored as one row per handle in `profile_records`.

    Requires init_db() to have run (done in the app lifespan).
    """

    async def load(self) -> list[ProfileRecord]:
        try:
            async with get_session() as session:
                result = await session.execute(select(ProfileRecordRow))
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            logger.warning(f"Profile store unavailable, ranking without data: {e}")
            return []

        profiles: list[ProfileRecord] = []
        for row in rows:
            try:
                profiles.append(row.to_record())
            except ValidationError as e:
                logger.warning(f"Skipping invalid profile row {row.handle!r}: {e.error_count()} errors")
        return profiles

    async def upsert(self, record: ProfileRecord) -> None:
        try:
            async with get_session() as session:
                await session.execute(build_upsert_statement(record))
        except (SQLAlchemyError, OSError, RuntimeError):
            logger.exception(f"Failed to save profile {record.handle}")
            return
        logger.info(f"Saved profile {record.handle}")


@lru_cache
def get_profile_store() -> ProfileStore:
    """Get the process-wide profile store for the configured backend."""
    settings = get_settings()
    if settings.profile_store_backend == "postgres":
        return PostgresProfileStore()
    return JsonFileProfileStore(
        settings.profiles_path,
        seed_path=settings.profiles_seed_path or None,
    )
