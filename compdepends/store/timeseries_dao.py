"""Time-series identifier directory backed by the ``ts_id`` table."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from compdepends.core.exceptions import NoSuchObjectError
from compdepends.core.models import TsIdRecord
from compdepends.tsdb.tsid import TimeSeriesIdentifier


def _to_tsid(rec: TsIdRecord) -> TimeSeriesIdentifier:
    return TimeSeriesIdentifier(
        key=rec.ts_code,
        site=rec.site_name,
        data_type=rec.data_type,
        param_type=rec.param_type or "",
        interval=rec.interval or "",
        duration=rec.duration or "",
        version=rec.version or "",
    )


class TimeSeriesDAO:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_tsid(self, ts_key: int) -> TimeSeriesIdentifier:
        """Read one TSID by key.

        Raises:
            NoSuchObjectError: If no time series has this key.
        """
        rec = self.session.get(TsIdRecord, ts_key)
        if rec is None:
            raise NoSuchObjectError(f"No time series with key={ts_key}")
        return _to_tsid(rec)

    def get_tsid_by_unique_name(self, unique_name: str) -> Optional[TimeSeriesIdentifier]:
        rec = self.session.scalar(
            select(TsIdRecord).where(TsIdRecord.unique_string == unique_name.upper())
        )
        return _to_tsid(rec) if rec is not None else None

    def list_tsids(self) -> list[TimeSeriesIdentifier]:
        rows = self.session.scalars(select(TsIdRecord).order_by(TsIdRecord.ts_code))
        return [_to_tsid(rec) for rec in rows]

    def create_tsid(self, tsid: TimeSeriesIdentifier) -> TimeSeriesIdentifier:
        """Register a new time series and return it with its assigned key."""
        rec = TsIdRecord(
            site_name=tsid.site,
            data_type=tsid.data_type,
            param_type=tsid.param_type,
            interval=tsid.interval,
            duration=tsid.duration,
            version=tsid.version,
            unique_string=tsid.unique_string.upper(),
        )
        if tsid.key is not None:
            rec.ts_code = tsid.key
        self.session.add(rec)
        self.session.flush()
        return tsid.with_key(rec.ts_code)

    def delete_tsid(self, ts_key: int) -> int:
        result = self.session.execute(delete(TsIdRecord).where(TsIdRecord.ts_code == ts_key))
        return result.rowcount
