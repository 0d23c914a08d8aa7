"""
Persistence backends for imported trades.

The pipeline talks to storage only through the PersistenceBackend protocol,
treating it as a remote store with insert/select/delete. Two reference
implementations ship with the package:

- InMemoryBackend: dict-backed, for tests and previews
- JsonLinesBackend: one JSON-lines file per user, for the CLI

Both enforce a unique (user_id, trade_hash) constraint the way the hosted
store does: a chunk containing an already-persisted hash is rejected whole
with BackendError code 23505.
"""

import asyncio
import hashlib
import json
import re
from pathlib import Path
from typing import Any, Iterable, Protocol, Sequence

from tradejournal.errors import BackendError
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()


class PersistenceBackend(Protocol):
    """Async trade store used by the import pipeline."""

    async def ping(self) -> bool:
        """Check the store is reachable. May raise BackendError."""
        ...

    async def insert_chunk(self, user_id: str, records: Sequence[dict[str, Any]]) -> int:
        """
        Insert records atomically.

        Returns:
            Number of rows inserted

        Raises:
            BackendError: With a SQLSTATE code when the chunk is rejected
        """
        ...

    async def count(self, user_id: str) -> int:
        """Number of persisted rows for a user."""
        ...

    async def fetch_hashes(self, user_id: str) -> set[str]:
        """Dedup hashes already persisted for a user."""
        ...

    async def fetch_records(self, user_id: str) -> list[dict[str, Any]]:
        """Every persisted row for a user, in insertion order."""
        ...

    async def delete(self, user_id: str, ids: Iterable[str]) -> int:
        """Delete rows by id. Returns the number removed."""
        ...


def _check_unique(user_id: str, existing: set[str], records: Sequence[dict[str, Any]]) -> None:
    seen = set(existing)
    for record in records:
        trade_hash = record.get("trade_hash")
        if trade_hash in seen:
            raise BackendError(
                f'duplicate key value violates unique constraint "trades_user_hash_key" '
                f"(user_id, trade_hash)=({user_id}, {trade_hash})",
                code=BackendError.UNIQUE_VIOLATION,
            )
        seen.add(trade_hash)


class InMemoryBackend:
    """
    Dict-backed backend.

    Attributes:
        available: Set False to make ping() fail (simulates an unreachable store)
        insert_calls: Number of insert_chunk invocations, including rejected ones
    """

    def __init__(self) -> None:
        self._rows: dict[str, list[dict[str, Any]]] = {}
        self.available = True
        self.insert_calls = 0

    async def ping(self) -> bool:
        if not self.available:
            raise BackendError("connection refused", code=BackendError.CONNECTION_FAILED)
        return True

    async def insert_chunk(self, user_id: str, records: Sequence[dict[str, Any]]) -> int:
        self.insert_calls += 1
        rows = self._rows.setdefault(user_id, [])
        _check_unique(user_id, {row["trade_hash"] for row in rows}, records)
        rows.extend(dict(record) for record in records)
        return len(records)

    async def count(self, user_id: str) -> int:
        return len(self._rows.get(user_id, []))

    async def fetch_hashes(self, user_id: str) -> set[str]:
        return {row["trade_hash"] for row in self._rows.get(user_id, [])}

    async def fetch_records(self, user_id: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self._rows.get(user_id, [])]

    async def delete(self, user_id: str, ids: Iterable[str]) -> int:
        targets = set(ids)
        rows = self._rows.get(user_id, [])
        kept = [row for row in rows if row["id"] not in targets]
        self._rows[user_id] = kept
        return len(rows) - len(kept)


_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


class JsonLinesBackend:
    """
    File-backed backend: one <user>-<digest>.jsonl file per user, one record per line.

    The file name is the sanitized user id plus a digest of the raw id, so
    ids that sanitize alike ("a@b", "a_b") still get separate files.

    File I/O runs in worker threads (asyncio.to_thread) so the event loop
    keeps servicing progress callbacks. Every operation on a user's file
    holds that user's lock; concurrent chunk inserts run one at a time and
    each sees the rows the previous one wrote.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self._locks: dict[str, asyncio.Lock] = {}

    def _path(self, user_id: str) -> Path:
        digest = hashlib.blake2b(user_id.encode("utf-8"), digest_size=8).hexdigest()
        return self.directory / f"{_SAFE_NAME.sub('_', user_id)}-{digest}.jsonl"

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def _read(self, user_id: str) -> list[dict[str, Any]]:
        path = self._path(user_id)
        if not path.exists():
            return []
        rows = []
        with open(path, encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as e:
                    raise BackendError(
                        f"{path}:{number}: {e.msg}", code=BackendError.INVALID_TEXT_REPRESENTATION
                    ) from e
        return rows

    def _append(self, user_id: str, records: Sequence[dict[str, Any]]) -> int:
        existing = {row.get("trade_hash") for row in self._read(user_id)}
        _check_unique(user_id, existing, records)
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self._path(user_id), "a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, separators=(",", ":")) + "\n")
        return len(records)

    def _rewrite(self, user_id: str, targets: set[str]) -> int:
        rows = self._read(user_id)
        kept = [row for row in rows if row.get("id") not in targets]
        if len(kept) != len(rows):
            with open(self._path(user_id), "w", encoding="utf-8") as f:
                for row in kept:
                    f.write(json.dumps(row, separators=(",", ":")) + "\n")
        return len(rows) - len(kept)

    async def ping(self) -> bool:
        def check() -> bool:
            self.directory.mkdir(parents=True, exist_ok=True)
            return self.directory.is_dir()

        try:
            return await asyncio.to_thread(check)
        except OSError as e:
            raise BackendError(f"store directory unavailable: {e}", code=BackendError.CONNECTION_FAILED) from e

    async def insert_chunk(self, user_id: str, records: Sequence[dict[str, Any]]) -> int:
        async with self._lock(user_id):
            inserted = await asyncio.to_thread(self._append, user_id, list(records))
        logger.debug("import.backend_appended", user_id=user_id, rows=inserted, path=str(self._path(user_id)))
        return inserted

    async def _read_locked(self, user_id: str) -> list[dict[str, Any]]:
        async with self._lock(user_id):
            return await asyncio.to_thread(self._read, user_id)

    async def count(self, user_id: str) -> int:
        return len(await self._read_locked(user_id))

    async def fetch_hashes(self, user_id: str) -> set[str]:
        rows = await self._read_locked(user_id)
        return {row["trade_hash"] for row in rows if "trade_hash" in row}

    async def fetch_records(self, user_id: str) -> list[dict[str, Any]]:
        return await self._read_locked(user_id)

    async def delete(self, user_id: str, ids: Iterable[str]) -> int:
        async with self._lock(user_id):
            return await asyncio.to_thread(self._rewrite, user_id, set(ids))
