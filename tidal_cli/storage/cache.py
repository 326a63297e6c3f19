"""
A bounded, file-based audio cache keyed by track id with least-recently-used eviction.
"""

import asyncio
import logging
import os
import uuid
from collections import OrderedDict
from pathlib import Path

import aiofiles
from pathvalidate import ValidationError, validate_filename

from tidal_cli.exceptions import CapacityExceededError, StorageIOError
from tidal_cli.models.stats import CacheStats, EvictionReport

log = logging.getLogger(__name__)

_PARTIAL_SUFFIX = ".part"


class ContentCache:
    """
    Stores transcoded audio objects in one directory under a byte budget.

    Recency is kept in an in-memory index (oldest first) that is updated on
    every insert and lookup. At start-up the index is rebuilt from a directory
    scan ordered by file access time, with ties broken by file name. Sizes are
    always re-read from disk before an eviction pass, so files removed or
    truncated behind the cache's back are accounted for on the next insert.
    """

    def __init__(self, cache_dir: Path, capacity_bytes: int, suffix: str = ".opus"):
        """
        Initializes the cache.

        Args:
            cache_dir: The directory that holds the cached objects.
            capacity_bytes: The maximum total size of all entries.
            suffix: File extension appended to every key.
        """
        if capacity_bytes <= 0:
            raise ValueError("Cache capacity must be positive.")
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.capacity = capacity_bytes
        self.suffix = suffix
        self._lock = asyncio.Lock()
        # key -> size in bytes, least recently used first
        self._index: OrderedDict[str, int] = OrderedDict()
        self._rebuild_index()

    def path_for(self, key: str) -> Path:
        """Returns the file path for a key, rejecting keys unsafe as file names."""
        file_name = f"{key}{self.suffix}"
        try:
            validate_filename(file_name, platform="universal")
        except ValidationError as e:
            raise ValueError(f"Invalid cache key '{key}': {e}") from e
        return self.cache_dir / file_name

    def _scan(self) -> list[tuple[str, int, float]]:
        """Lists (key, size, access time) for every complete entry on disk."""
        entries = []
        with os.scandir(self.cache_dir) as it:
            for entry in it:
                if not entry.name.endswith(self.suffix) or not entry.is_file():
                    continue
                try:
                    st = entry.stat()
                except FileNotFoundError:
                    continue
                key = entry.name[: -len(self.suffix)]
                entries.append((key, st.st_size, st.st_atime))
        return entries

    def _rebuild_index(self) -> None:
        entries = sorted(self._scan(), key=lambda e: (e[2], e[0]))
        self._index = OrderedDict((key, size) for key, size, _ in entries)
        if self._index:
            log.debug(
                f"Cache index rebuilt: {len(self._index)} entries, "
                f"{sum(self._index.values())} bytes."
            )

    def _reconcile(self) -> int:
        """
        Brings the index in line with the directory and returns the total size.

        Entries that vanished are dropped. Files the index does not know about
        are treated as the least recently used, ordered by access time.
        """
        on_disk = {key: (size, atime) for key, size, atime in self._scan()}

        for key in [k for k in self._index if k not in on_disk]:
            del self._index[key]

        unknown = sorted(
            (atime, key) for key, (_, atime) in on_disk.items() if key not in self._index
        )
        for _, key in reversed(unknown):
            self._index[key] = on_disk[key][0]
            self._index.move_to_end(key, last=False)

        for key in list(self._index):
            self._index[key] = on_disk[key][0]

        return sum(self._index.values())

    def _evict(self, protected_key: str, total_size: int, report: EvictionReport) -> int:
        """Removes whole entries, oldest first, until the total fits the capacity."""
        for key in list(self._index):
            if total_size <= self.capacity:
                break
            if key == protected_key:
                continue
            size = self._index[key]
            try:
                self.path_for(key).unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                log.warning(f"Failed to evict cache entry '{key}': {e}")
                report.failed.append(key)
                continue
            del self._index[key]
            total_size -= size
            report.evicted.append(key)
            log.debug(f"Evicted cache entry '{key}' ({size} bytes).")
        return total_size

    async def exists(self, key: str) -> bool:
        """Checks whether an entry is cached without touching its recency."""
        path = self.path_for(key)
        async with self._lock:
            return await asyncio.to_thread(path.is_file)

    async def lookup(self, key: str) -> Path | None:
        """
        Returns the path of a cached entry and marks it as most recently used.

        Returns:
            The file path, or None if the key is not cached.
        """
        path = self.path_for(key)
        async with self._lock:
            if not await asyncio.to_thread(path.is_file):
                self._index.pop(key, None)
                return None
            if key in self._index:
                self._index.move_to_end(key)
            else:
                self._index[key] = (await asyncio.to_thread(path.stat)).st_size
            return path

    async def insert(self, key: str, data: bytes) -> EvictionReport:
        """
        Stores an object and evicts least recently used entries to fit the capacity.

        Args:
            key: The track id.
            data: The encoded audio.

        Returns:
            A report of what was evicted and which candidates could not be removed.

        Raises:
            CapacityExceededError: If the object alone is larger than the capacity.
            StorageIOError: If the object cannot be written.
        """
        path = self.path_for(key)
        if len(data) > self.capacity:
            raise CapacityExceededError(
                f"Object '{key}' is {len(data)} bytes, larger than the cache "
                f"capacity of {self.capacity} bytes."
            )

        report = EvictionReport(key=key)
        async with self._lock:
            tmp_path = self.cache_dir / f".{uuid.uuid4().hex}{_PARTIAL_SUFFIX}"
            try:
                async with aiofiles.open(tmp_path, "wb") as f:
                    await f.write(data)
                await asyncio.to_thread(os.replace, tmp_path, path)
            except OSError as e:
                if await asyncio.to_thread(tmp_path.exists):
                    await asyncio.to_thread(tmp_path.unlink)
                raise StorageIOError(f"Failed to write cache entry '{key}': {e}") from e

            try:
                total_size = await asyncio.to_thread(self._reconcile)
            except OSError as e:
                raise StorageIOError(f"Failed to scan cache directory: {e}") from e
            self._index[key] = len(data)
            self._index.move_to_end(key)

            if total_size > self.capacity:
                total_size = await asyncio.to_thread(
                    self._evict, key, total_size, report
                )
            report.total_size = total_size

        if report.failed:
            log.warning(
                f"Cache is {total_size} bytes after inserting '{key}'; "
                f"{len(report.failed)} entries could not be evicted."
            )
        return report

    async def stats(self) -> CacheStats:
        """Returns a snapshot of the cache contents."""
        async with self._lock:
            total_size = await asyncio.to_thread(self._reconcile)
            return CacheStats(
                entries=len(self._index), total_size=total_size, capacity=self.capacity
            )

    async def clear(self) -> int:
        """Removes all entries and returns how many were deleted."""
        log.info("Clearing all cache entries...")
        async with self._lock:
            await asyncio.to_thread(self._reconcile)
            removed = 0
            for key in list(self._index):
                try:
                    await asyncio.to_thread(self.path_for(key).unlink)
                    removed += 1
                except FileNotFoundError:
                    pass
                except OSError as e:
                    log.error(f"Failed to remove cache entry '{key}': {e}")
                    continue
                del self._index[key]
            return removed
