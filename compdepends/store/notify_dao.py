"""Change-notification queue backed by ``cp_depends_notify``.

Other processes append rows; the daemon consumes them oldest first.  A row
is deleted in the same transaction that reads it, so each notification is
handed out at most once per successful commit.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from compdepends.core.models import CpDependsNotifyRecord
from compdepends.core.utils.logging_config import get_logger
from compdepends.store.base import as_utc
from compdepends.tsdb.notify import CpDependsNotify, notify_from_code

logger = get_logger("store.notify_dao")


class NotifyDAO:
    def __init__(self, session: Session) -> None:
        self.session = session

    def next_notify(self) -> Optional[CpDependsNotify]:
        """Pop the oldest pending notification, or ``None`` if the queue is empty.

        Rows with an unknown event type are discarded with a warning.
        """
        while True:
            rec = self.session.scalar(
                select(CpDependsNotifyRecord).order_by(CpDependsNotifyRecord.record_num).limit(1)
            )
            if rec is None:
                return None
            self.session.execute(
                delete(CpDependsNotifyRecord).where(
                    CpDependsNotifyRecord.record_num == rec.record_num
                )
            )
            try:
                return notify_from_code(rec.event_type, rec.key, as_utc(rec.date_time_loaded))
            except (KeyError, ValueError):
                logger.warning(
                    "unknown_notify_type",
                    record_num=rec.record_num,
                    event_type=rec.event_type,
                    key=rec.key,
                )

    def enqueue(self, notify: CpDependsNotify) -> None:
        """Append a notification (used by editors and tests)."""
        self.session.add(
            CpDependsNotifyRecord(
                event_type=notify.event_type.value,
                key=notify.key if notify.key is not None else -1,
                date_time_loaded=notify.loaded_at,
            )
        )
        self.session.flush()

    def pending_count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(CpDependsNotifyRecord)) or 0
