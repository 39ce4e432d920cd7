"""Maintenance script to delete avatar objects no user references anymore.

Superseded avatars are kept by the request path; this sweep reclaims them.
Objects newer than the grace period are skipped so uploads that have not been
committed yet are never removed.

Usage:
    python scripts/prune_orphaned_avatars.py

Environment overrides:
    AVATAR_ORPHAN_GRACE_SECONDS=86400
    AVATAR_PRUNE_MAX_DELETES=1000
    AVATAR_PRUNE_DRY_RUN=false
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from time import perf_counter
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from db.session import AsyncSessionMaker  # noqa: E402
from models import User  # noqa: E402
from services.avatars import AVATAR_KEY_PREFIX  # noqa: E402
from services.storage import delete_object, iter_objects  # noqa: E402

GRACE_SECONDS_ENV = "AVATAR_ORPHAN_GRACE_SECONDS"
MAX_DELETES_ENV = "AVATAR_PRUNE_MAX_DELETES"
DRY_RUN_ENV = "AVATAR_PRUNE_DRY_RUN"
DEFAULT_GRACE_SECONDS = 24 * 60 * 60
DEFAULT_MAX_DELETES = 1000
TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})
FALSY_VALUES = frozenset({"0", "false", "no", "off"})


def _parse_positive_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{label} must be positive")
    return parsed


def _parse_non_negative_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed < 0:
        raise ValueError(f"{label} must be non-negative")
    return parsed


def _parse_bool(raw_value: str | None, *, default: bool, label: str) -> bool:
    if raw_value is None or raw_value.strip() == "":
        return default
    normalized = raw_value.strip().lower()
    if normalized in TRUTHY_VALUES:
        return True
    if normalized in FALSY_VALUES:
        return False
    raise ValueError(f"{label} must be a boolean")


def _is_not_null(column: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column.isnot(None))


def select_orphaned_keys(
    objects: Iterable[tuple[str, datetime | None]],
    *,
    referenced_keys: set[str],
    now: datetime,
    grace: timedelta,
) -> Iterator[str]:
    """Yield keys that are unreferenced and older than ``grace``.

    Objects without a modification time are treated as too recent to judge.
    """
    cutoff = now - grace
    for object_key, last_modified in objects:
        if object_key in referenced_keys:
            continue
        if last_modified is None:
            continue
        if last_modified.tzinfo is None:
            last_modified = last_modified.replace(tzinfo=timezone.utc)
        if last_modified > cutoff:
            continue
        yield object_key


async def _load_referenced_keys() -> set[str]:
    async with AsyncSessionMaker() as session:
        avatar_key_column = cast(ColumnElement[str], User.avatar_key)
        result = await session.execute(
            select(avatar_key_column).where(_is_not_null(avatar_key_column))
        )
        return {key for key in result.scalars().all() if key}


async def run() -> None:
    grace_seconds = _parse_non_negative_int(
        os.getenv(GRACE_SECONDS_ENV),
        default=DEFAULT_GRACE_SECONDS,
        label=GRACE_SECONDS_ENV,
    )
    max_deletes = _parse_positive_int(
        os.getenv(MAX_DELETES_ENV),
        default=DEFAULT_MAX_DELETES,
        label=MAX_DELETES_ENV,
    )
    dry_run = _parse_bool(os.getenv(DRY_RUN_ENV), default=False, label=DRY_RUN_ENV)

    started_at = perf_counter()
    referenced_keys = await _load_referenced_keys()
    objects = await asyncio.to_thread(lambda: list(iter_objects(AVATAR_KEY_PREFIX)))

    deleted = 0
    stop_reason = "completed"
    for object_key in select_orphaned_keys(
        objects,
        referenced_keys=referenced_keys,
        now=datetime.now(timezone.utc),
        grace=timedelta(seconds=grace_seconds),
    ):
        if deleted >= max_deletes:
            stop_reason = "max_deletes"
            break
        if dry_run:
            print(f"Would delete orphaned avatar {object_key}")
        else:
            await asyncio.to_thread(delete_object, object_key)
            print(f"Deleted orphaned avatar {object_key}")
        deleted += 1

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    print(
        "Orphaned avatar prune complete: "
        f"objects_scanned={len(objects)}, referenced={len(referenced_keys)}, "
        f"deleted={deleted}, dry_run={dry_run}, elapsed_ms={elapsed_ms}, "
        f"stop_reason={stop_reason}"
    )


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
