"""Time-series identifier table -- one row per registered time series.

The six identity parts are stored separately so that the store can be
queried by site or data type; ``unique_string`` is the upper-cased dotted
concatenation used for case-insensitive unique-name lookups.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TsIdRecord(Base):
    __tablename__ = "ts_id"

    ts_code: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_name: Mapped[str] = mapped_column(String(100), nullable=False)
    data_type: Mapped[str] = mapped_column(String(64), nullable=False)
    param_type: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    interval: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    duration: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    version: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    unique_string: Mapped[str] = mapped_column(String(400), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<TsIdRecord(ts_code={self.ts_code}, unique_string={self.unique_string!r})>"
