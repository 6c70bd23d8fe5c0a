"""Task records for text-side generation jobs."""

from __future__ import annotations

import json
from typing import Any

from pydantic_core import to_jsonable_python

from dramaforge.engine.records import JobRecordStore
from dramaforge.models.jobs import JobStatus, Task, TaskType
from dramaforge.storage import KeyValueStore, StorageKeys, generate_id


class TaskStore(JobRecordStore[Task]):
    """Progress-reporting task records stored under the tasks key."""

    def __init__(self, store: KeyValueStore) -> None:
        super().__init__(store, StorageKeys.TASKS, Task, "Task", error_field="error")

    def create(
        self,
        task_type: TaskType,
        resource_id: str | None = None,
        message: str = "",
    ) -> Task:
        task = Task(
            id=generate_id("task"),
            type=task_type,
            resource_id=resource_id,
            status=JobStatus.PENDING,
            progress=0,
            message=message,
        )
        return self.add(task)

    def start(self, task_id: str, progress: int = 0, message: str = "") -> Task | None:
        return self.mark_processing(task_id, progress=progress, message=message)

    def progress(self, task_id: str, progress: int, message: str = "") -> Task | None:
        return self.update(task_id, {"progress": progress, "message": message})

    def complete(self, task_id: str, result: Any, message: str = "") -> Task | None:
        """Finish a task, storing ``result`` as a JSON string."""
        payload = json.dumps(to_jsonable_python(result), ensure_ascii=False)
        return self.mark_completed(task_id, progress=100, message=message, result=payload)

    def fail(self, task_id: str, error: str) -> Task | None:
        return self.mark_failed(task_id, error)

    def get_task_status(self, task_id: str) -> Task:
        """Return the task record.

        Raises:
            NotFoundError: If no task has ``task_id``.
        """
        return self.get(task_id)
