"""Job record persistence with one-way status transitions."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from dramaforge.config import get_logger
from dramaforge.exceptions import NotFoundError
from dramaforge.models.jobs import JobRecord, JobStatus
from dramaforge.storage import KeyValueStore, StorageCollection, utc_now

logger = get_logger(__name__)

R = TypeVar("R", bound=JobRecord)


class JobRecordStore(Generic[R]):
    """Collection of job records whose terminal states are never reopened.

    Every transition re-reads the record first; a record already
    ``completed`` or ``failed`` is left untouched and the call returns None.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        model: type[R],
        entity: str,
        error_field: str = "error_msg",
    ) -> None:
        self.store = store
        self.collection: StorageCollection[R] = StorageCollection(store, key, model)
        self.entity = entity
        self.error_field = error_field

    def add(self, record: R) -> R:
        return self.collection.add(record)

    def get(self, record_id: Any) -> R:
        record = self.collection.get_by_id(record_id)
        if record is None:
            raise NotFoundError(self.entity, record_id)
        return record

    def find(self, record_id: Any) -> R | None:
        return self.collection.get_by_id(record_id)

    def all(self) -> list[R]:
        return self.collection.get_all()

    def delete(self, record_id: Any) -> bool:
        return self.collection.delete(record_id)

    def _transition(self, record_id: Any, fields: dict[str, Any]) -> R | None:
        current = self.collection.get_by_id(record_id)
        if current is None:
            logger.warning("Job record vanished", entity=self.entity, record_id=record_id)
            return None
        if current.status.is_terminal:
            logger.info(
                "Ignoring update to terminal job",
                entity=self.entity,
                record_id=record_id,
                status=current.status.value,
                attempted=fields.get("status"),
            )
            return None
        return self.collection.update(record_id, fields)

    def update(self, record_id: Any, fields: dict[str, Any]) -> R | None:
        """Change non-status fields of a live record."""
        return self._transition(record_id, fields)

    def mark_processing(self, record_id: Any, **fields: Any) -> R | None:
        return self._transition(record_id, {**fields, "status": JobStatus.PROCESSING})

    def mark_completed(self, record_id: Any, **fields: Any) -> R | None:
        return self._transition(
            record_id,
            {**fields, "status": JobStatus.COMPLETED, "completed_at": utc_now()},
        )

    def mark_failed(self, record_id: Any, error: str, **fields: Any) -> R | None:
        return self._transition(
            record_id,
            {
                **fields,
                "status": JobStatus.FAILED,
                self.error_field: error,
                "completed_at": utc_now(),
            },
        )
