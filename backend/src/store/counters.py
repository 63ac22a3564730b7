"""Counter projection: cached aggregates kept in step with their sources.

Counters are updated with a single ``UPDATE ... SET col = col +/- n`` so
concurrent increments never lose each other. Sources of truth:

    file.like_count          count of file_like rows for the file
    user.upload_count        count of files owned by the user
    user.banned_file_count   count of the user's files in BANNED
    tag.usage_count          count of file_tag rows for the tag
    file.view_count / file.download_count are event counts with no source
    table; they are only ever incremented.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple, Type

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from domain.moderation.enums import CounterKey, FileStatus
from domain.moderation.errors import NotFoundError
from models.file import File
from models.file_like import FileLike
from models.tag import Tag, file_tag
from models.user import User
from observability.metrics import counter_drift_total, counter_updates_total
from .entity_store import expire_cached

logger = logging.getLogger(__name__)


COUNTER_COLUMNS: Dict[CounterKey, Tuple[Type, str]] = {
    CounterKey.FILE_VIEWS: (File, "view_count"),
    CounterKey.FILE_DOWNLOADS: (File, "download_count"),
    CounterKey.FILE_LIKES: (File, "like_count"),
    CounterKey.USER_UPLOADS: (User, "upload_count"),
    CounterKey.USER_BANNED_FILES: (User, "banned_file_count"),
    CounterKey.TAG_USAGE: (Tag, "usage_count"),
}

# Counters that can be recomputed from a source table
RECONCILABLE = (
    CounterKey.USER_UPLOADS,
    CounterKey.USER_BANNED_FILES,
    CounterKey.FILE_LIKES,
    CounterKey.TAG_USAGE,
)


@dataclass(frozen=True)
class CounterDrift:
    """A cached counter value that disagrees with its source of truth."""
    counter: CounterKey
    entity_id: int
    cached: int
    actual: int

    def to_dict(self):
        return {
            "counter": self.counter.value,
            "entity_id": self.entity_id,
            "cached": self.cached,
            "actual": self.actual,
        }


class CounterProjection:
    """Increment, decrement and reconcile derived counters in one session."""

    def __init__(self, session: Session):
        self.session = session

    def increment(self, key: CounterKey, entity_id: int, by: int = 1) -> None:
        model, column_name = COUNTER_COLUMNS[key]
        column = getattr(model, column_name)
        result = self.session.execute(
            update(model)
            .where(model.id == entity_id)
            .values({column_name: column + by})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(
                f"Cannot update {key.value}: entity {entity_id} not found",
                context={"counter": key.value, "entity_id": entity_id},
            )
        expire_cached(self.session, model, entity_id, [column_name])
        counter_updates_total.labels(counter=key.value, direction="increment").inc(by)

    def decrement(self, key: CounterKey, entity_id: int, by: int = 1) -> None:
        """Decrement a counter, never below zero.

        A counter that would go negative has drifted from its source. The
        value is clamped at zero, the drift is logged and counted, and
        ``reconcile`` restores the exact value.
        """
        model, column_name = COUNTER_COLUMNS[key]
        column = getattr(model, column_name)
        result = self.session.execute(
            update(model)
            .where(model.id == entity_id, column >= by)
            .values({column_name: column - by})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self.session.scalar(select(column).where(model.id == entity_id))
            if current is None:
                raise NotFoundError(
                    f"Cannot update {key.value}: entity {entity_id} not found",
                    context={"counter": key.value, "entity_id": entity_id},
                )
            logger.warning(
                "Counter would go negative, clamping at zero",
                extra={"counter": key.value, "entity_id": entity_id, "cached": current, "by": by},
            )
            counter_drift_total.labels(counter=key.value).inc()
            self.session.execute(
                update(model)
                .where(model.id == entity_id)
                .values({column_name: 0})
                .execution_options(synchronize_session=False)
            )
        expire_cached(self.session, model, entity_id, [column_name])
        counter_updates_total.labels(counter=key.value, direction="decrement").inc(by)

    def value(self, key: CounterKey, entity_id: int) -> int:
        model, column_name = COUNTER_COLUMNS[key]
        return self.session.scalar(select(getattr(model, column_name)).where(model.id == entity_id))

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _actual_counts(self, key: CounterKey) -> Dict[int, int]:
        if key == CounterKey.USER_UPLOADS:
            stmt = select(File.owner_id, func.count()).group_by(File.owner_id)
        elif key == CounterKey.USER_BANNED_FILES:
            stmt = (
                select(File.owner_id, func.count())
                .where(File.audit_status == FileStatus.BANNED.value)
                .group_by(File.owner_id)
            )
        elif key == CounterKey.FILE_LIKES:
            stmt = select(FileLike.file_id, func.count()).group_by(FileLike.file_id)
        elif key == CounterKey.TAG_USAGE:
            stmt = select(file_tag.c.tag_id, func.count()).group_by(file_tag.c.tag_id)
        else:
            raise ValueError(f"{key.value} has no source of truth to reconcile against")
        return {entity_id: count for entity_id, count in self.session.execute(stmt)}

    def reconcile(self, repair: bool = False) -> List[CounterDrift]:
        """Recompute every reconcilable counter by full scan.

        Args:
            repair: Overwrite drifted cached values with the recomputed ones

        Returns:
            All drifts found, ordered by counter then entity id
        """
        drifts: List[CounterDrift] = []
        for key in RECONCILABLE:
            model, column_name = COUNTER_COLUMNS[key]
            actual = self._actual_counts(key)
            rows = self.session.execute(
                select(model.id, getattr(model, column_name)).order_by(model.id)
            )
            for entity_id, cached in rows:
                expected = actual.get(entity_id, 0)
                if cached != expected:
                    drifts.append(CounterDrift(key, entity_id, cached, expected))

        for drift in drifts:
            counter_drift_total.labels(counter=drift.counter.value).inc()
            logger.warning(
                "Counter drift detected",
                extra=drift.to_dict(),
            )
            if repair:
                model, column_name = COUNTER_COLUMNS[drift.counter]
                self.session.execute(
                    update(model)
                    .where(model.id == drift.entity_id)
                    .values({column_name: drift.actual})
                    .execution_options(synchronize_session=False)
                )
                expire_cached(self.session, model, drift.entity_id, [column_name])
                counter_updates_total.labels(counter=drift.counter.value, direction="repair").inc()

        return drifts
