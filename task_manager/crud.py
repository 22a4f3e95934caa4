import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from .models import Task
from .schemas import TaskCreate, TaskFilter, TaskPriority, TaskStats, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# Fields a partial update may touch; id and created_at are never written
MERGEABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


class _Clock:
    """UTC clock whose readings strictly increase within the process"""

    def __init__(self):
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current


_clock = _Clock()


def utc_timestamp() -> str:
    """Current time as a fixed-width ISO 8601 string"""
    return _clock.now().strftime(TIMESTAMP_FORMAT)


def _coerce_enums(values: Dict[str, Any]) -> Dict[str, Any]:
    # Out-of-range values raise ValueError rather than reaching the table
    if "status" in values:
        values["status"] = TaskStatus(values["status"]).value
    if "priority" in values:
        values["priority"] = TaskPriority(values["priority"]).value
    return values


async def list_tasks(
    db: AsyncSession,
    task_filter: Optional[TaskFilter] = None
) -> List[Task]:
    """Get tasks, newest first, matching every supplied filter"""
    query = select(Task)

    if task_filter:
        conditions = []

        if task_filter.status:
            conditions.append(Task.status == TaskStatus(task_filter.status).value)

        if task_filter.priority:
            conditions.append(Task.priority == TaskPriority(task_filter.priority).value)

        if task_filter.search:
            conditions.append(
                or_(
                    Task.title.contains(task_filter.search, autoescape=True),
                    Task.description.contains(task_filter.search, autoescape=True),
                )
            )

        if conditions:
            query = query.filter(and_(*conditions))

    query = query.order_by(Task.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_task(db: AsyncSession, task_id: str) -> Optional[Task]:
    """Get a task by ID"""
    result = await db.execute(select(Task).filter(Task.id == str(task_id)))
    return result.scalar_one_or_none()


async def create_task(db: AsyncSession, task: TaskCreate) -> Task:
    """Create a new task, filling defaults for omitted fields"""
    values = _coerce_enums(task.model_dump(include=set(MERGEABLE_FIELDS)))
    now = utc_timestamp()

    db_task = Task(
        id=str(uuid.uuid4()),
        title=values.get("title") or "",
        description=values.get("description") or "",
        status=values.get("status") or TaskStatus.PENDING.value,
        priority=values.get("priority") or TaskPriority.MEDIUM.value,
        due_date=values.get("due_date"),
        created_at=now,
        updated_at=now,
    )
    db.add(db_task)
    await db.commit()
    logger.info("Created task id=%s status=%s", db_task.id, db_task.status)
    return db_task


async def update_task(
    db: AsyncSession,
    task_id: str,
    task_update: TaskUpdate
) -> Optional[Task]:
    """Merge the supplied fields into a task.

    The merge runs as a single UPDATE ... RETURNING so concurrent writers
    to the same row serialize in the store. Returns None when no row has
    this id; nothing is inserted in that case.
    """
    values = {
        field: value
        for field, value in task_update.changes().items()
        if field in MERGEABLE_FIELDS
    }
    values = _coerce_enums(values)
    values["updated_at"] = utc_timestamp()

    statement = (
        update(Task)
        .where(Task.id == str(task_id))
        .values(**values)
        .returning(Task)
    )
    result = await db.execute(statement)
    db_task = result.scalar_one_or_none()
    await db.commit()

    if db_task is None:
        logger.info("Update skipped, task id=%s not found", task_id)
        return None

    logger.info("Updated task id=%s fields=%s", task_id, sorted(values))
    return db_task


async def delete_task(db: AsyncSession, task_id: str) -> bool:
    """Delete a task; True only if a row was removed"""
    result = await db.execute(
        delete(Task).where(Task.id == str(task_id)).returning(Task.id)
    )
    deleted = result.scalar_one_or_none() is not None
    await db.commit()

    if deleted:
        logger.info("Deleted task id=%s", task_id)
    return deleted


async def get_task_stats(db: AsyncSession) -> TaskStats:
    """Count tasks per status; total is the sum of the buckets"""
    result = await db.execute(
        select(Task.status, func.count(Task.id)).group_by(Task.status)
    )

    counts = {status.value: 0 for status in TaskStatus}
    for status, count in result.all():
        if status in counts:
            counts[status] = count
        else:
            logger.warning("Ignoring %d task(s) with unknown status %r", count, status)

    return TaskStats(total=sum(counts.values()), **counts)
