"""Cache of every known time-series identifier.

Backs group expansion (pattern criteria are matched against every cached
TSID) and parameter resolution (transformed unique strings are looked up
here).  Entries never age out; the daemon reloads the whole cache on its
periodic refresh.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from compdepends.cache.object_cache import DbObjectCache
from compdepends.core.utils.logging_config import get_logger
from compdepends.store.timeseries_dao import TimeSeriesDAO
from compdepends.tsdb.tsid import TimeSeriesIdentifier

logger = get_logger("cache.tsid")


class TsIdCache:
    def __init__(self) -> None:
        self._cache: DbObjectCache[TimeSeriesIdentifier] = DbObjectCache(max_age=None)

    def reload(self, dao: TimeSeriesDAO) -> int:
        """Replace the cache contents with every TSID in the store."""
        self._cache.clear()
        for tsid in dao.list_tsids():
            self._cache.put(tsid)
        logger.info("tsid_cache_reloaded", count=len(self._cache))
        return len(self._cache)

    def resolve(self, ts_key: int, dao: TimeSeriesDAO) -> TimeSeriesIdentifier:
        """Return the TSID for *ts_key*, reading through to the store.

        Raises:
            NoSuchObjectError: If the store has no such time series.
        """
        tsid = dao.get_tsid(ts_key)
        self._cache.put(tsid)
        return tsid

    def add(self, tsid: TimeSeriesIdentifier) -> None:
        self._cache.put(tsid)

    def remove(self, ts_key: int) -> Optional[TimeSeriesIdentifier]:
        return self._cache.remove(ts_key)

    def get_by_key(self, ts_key: int) -> Optional[TimeSeriesIdentifier]:
        return self._cache.get_by_key(ts_key)

    def get_by_unique_name(self, unique_name: str) -> Optional[TimeSeriesIdentifier]:
        return self._cache.get_by_unique_name(unique_name)

    def __iter__(self) -> Iterator[TimeSeriesIdentifier]:
        return iter(self._cache)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, ts_key: object) -> bool:
        return ts_key in self._cache

    def dump(self, path: Path) -> None:
        """Write one TSID per line to *path* (diagnostics only)."""
        try:
            with path.open("w", encoding="utf-8") as f:
                for tsid in sorted(self._cache, key=lambda t: t.key or 0):
                    f.write(f"{tsid}\n")
        except OSError as exc:
            logger.warning("tsid_dump_failed", path=str(path), error=str(exc))
