import logging
from datetime import datetime, timedelta
from enum import Enum
from database import db
from errors import InvalidTransitionError, NotFoundError
from models import ScheduledTask, SchedulerLog
from utils import ConfigHelper, parse_datetime

logger = logging.getLogger(__name__)


class TaskType(Enum):
    SYNC = "sync"
    SOCIAL_POST = "social_post"
    MOVIDO_POST = "movido_post"
    JOB_REFRESH = "job_refresh"
    PORTAL_SYNC = "portal_sync"
    PIPELINE_PROCESSOR = "pipeline_processor"
    DATA_CLEANUP = "data_cleanup"
    CUSTOM = "custom"


class TaskStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class IntervalType(Enum):
    ONCE = "once"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


ALLOWED_TRANSITIONS = {
    'pending': {'running', 'cancelled'},
    'running': {'completed', 'failed', 'cancelled'},
    'failed': {'pending', 'cancelled'},
    'completed': {'pending'},
    'cancelled': set(),
}

STATUS_ACTIONS = {
    'running': 'start',
    'completed': 'complete',
    'failed': 'fail',
    'cancelled': 'cancel',
    'pending': 'retry',
}

UPDATABLE_FIELDS = ('task_type', 'entity_id', 'entity_type', 'scheduled_for', 'interval_type',
                    'interval_value', 'custom_schedule', 'config')


def _js_weekday(moment):
    """Weekday with 0 = Sunday"""
    return (moment.weekday() + 1) % 7


def next_custom_run(base, schedule):
    """Next slot of a custom schedule after ``base``.

    ``schedule`` may carry ``hours`` (0-23), ``days`` (0 = Sunday),
    ``specific_dates`` and ``exclude_dates`` (ISO dates). The earliest future
    specific date wins over the weekly pattern.
    """
    schedule = schedule or {}
    now = datetime.utcnow()

    specific = sorted(
        d for d in (parse_datetime(v) for v in schedule.get('specific_dates') or []) if d and d > now
    )
    if specific:
        return specific[0]

    days = set(int(d) for d in schedule.get('days') or [])
    excluded = set()
    for value in schedule.get('exclude_dates') or []:
        parsed = parse_datetime(value)
        if parsed:
            excluded.add(parsed.date())

    # Without hours the slot keeps the time of day of the base run
    if schedule.get('hours'):
        slots = [(int(h), 0) for h in sorted(schedule['hours'])]
    else:
        slots = [(base.hour, base.minute)]

    day = base.replace(hour=0, minute=0, second=0, microsecond=0)
    for offset in range(0, 367):
        current = day + timedelta(days=offset)
        if days and _js_weekday(current) not in days:
            continue
        if current.date() in excluded:
            continue
        for hour, minute in slots:
            candidate = current.replace(hour=hour, minute=minute)
            if candidate > base:
                return candidate

    return base + timedelta(days=1)


class SchedulerService:
    """Persistent scheduled tasks with a status lifecycle and an audit log"""

    def create_task(self, task_type, scheduled_for, interval_type='once', interval_value=None,
                    custom_schedule=None, config=None, entity_id=None, entity_type=None, created_by=None):
        if isinstance(scheduled_for, str):
            scheduled_for = parse_datetime(scheduled_for)

        task = ScheduledTask(
            task_type=task_type,
            status=TaskStatus.PENDING.value,
            scheduled_for=scheduled_for,
            next_run=scheduled_for,
            interval_type=interval_type or IntervalType.ONCE.value,
            interval_value=interval_value,
            custom_schedule=custom_schedule,
            config=config,
            entity_id=str(entity_id) if entity_id is not None else None,
            entity_type=entity_type,
            created_by=str(created_by) if created_by is not None else None
        )
        db.session.add(task)
        db.session.commit()

        self.log_task_action(task.id, task.task_type, 'create', task.status, {'scheduled_for': scheduled_for.isoformat()})
        logger.info(f"Created {task_type} task {task.id} for {scheduled_for.isoformat()}")
        return task

    def get_task_by_id(self, task_id):
        return db.session.get(ScheduledTask, task_id)

    def _require_task(self, task_id):
        task = self.get_task_by_id(task_id)
        if not task:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def check_transition(self, task_id, status):
        """Raise unless the task may move to ``status``, returns the task"""
        task = self._require_task(task_id)
        if status not in ALLOWED_TRANSITIONS.get(task.status, set()):
            raise InvalidTransitionError(task.status, status)
        return task

    def claim_task(self, task_id):
        """Move a pending task to running in one UPDATE.

        Returns False when the task is no longer pending, i.e. another runner
        claimed it first.
        """
        claimed = ScheduledTask.query.filter_by(id=task_id, status=TaskStatus.PENDING.value)\
            .update({'status': TaskStatus.RUNNING.value}, synchronize_session=False)
        db.session.commit()
        if not claimed:
            return False

        task = self.get_task_by_id(task_id)
        self.log_task_action(task.id, task.task_type, STATUS_ACTIONS[TaskStatus.RUNNING.value],
                             TaskStatus.RUNNING.value)
        return True

    def update_task_status(self, task_id, status, result=None, error=None):
        task = self.check_transition(task_id, status)

        task.status = status
        if status in (TaskStatus.COMPLETED.value, TaskStatus.FAILED.value):
            task.last_run = datetime.utcnow()
            task.result = result
            task.error = error

            if task.interval_type and task.interval_type != IntervalType.ONCE.value:
                task.next_run = self.calculate_next_run(task)
                task.status = TaskStatus.PENDING.value

        db.session.commit()

        self.log_task_action(task.id, task.task_type, STATUS_ACTIONS[status], status,
                             {'result': result, 'error': error})
        return task

    def update_task(self, task_id, **fields):
        task = self._require_task(task_id)

        for field in UPDATABLE_FIELDS:
            if field in fields:
                value = fields[field]
                if field == 'scheduled_for' and isinstance(value, str):
                    value = parse_datetime(value)
                setattr(task, field, value)

        if 'scheduled_for' in fields and task.status == TaskStatus.PENDING.value:
            task.next_run = task.scheduled_for

        db.session.commit()
        return task

    def delete_task(self, task_id):
        task = self.get_task_by_id(task_id)
        if not task:
            return False

        self.log_task_action(task.id, task.task_type, 'cancel', TaskStatus.CANCELLED.value, {'deleted': True})
        db.session.delete(task)
        db.session.commit()
        return True

    def get_tasks(self, status=None, task_type=None, entity_id=None, entity_type=None, limit=100, offset=0):
        query = ScheduledTask.query
        if status:
            query = query.filter_by(status=status)
        if task_type:
            query = query.filter_by(task_type=task_type)
        if entity_id is not None:
            query = query.filter_by(entity_id=str(entity_id))
        if entity_type:
            query = query.filter_by(entity_type=entity_type)

        return query.order_by(ScheduledTask.next_run.asc(), ScheduledTask.id.asc())\
            .offset(offset).limit(limit).all()

    def get_next_pending_tasks(self, limit=10):
        return ScheduledTask.query.filter_by(status=TaskStatus.PENDING.value)\
            .order_by(ScheduledTask.next_run.asc()).limit(limit).all()

    def get_due_tasks(self, now=None):
        now = now or datetime.utcnow()
        return ScheduledTask.query.filter(
            ScheduledTask.status == TaskStatus.PENDING.value,
            ScheduledTask.next_run <= now
        ).order_by(ScheduledTask.next_run.asc()).all()

    def calculate_next_run(self, task):
        """Next execution time of a recurring task, None for one-off tasks"""
        if not task.interval_type or task.interval_type == IntervalType.ONCE.value:
            return None

        base = task.last_run or task.scheduled_for or datetime.utcnow()
        value = task.interval_value or 1

        if task.interval_type == IntervalType.HOURLY.value:
            next_run = base + timedelta(hours=value)
        elif task.interval_type == IntervalType.DAILY.value:
            next_run = base + timedelta(days=value)
        elif task.interval_type == IntervalType.WEEKLY.value:
            next_run = base + timedelta(weeks=value)
        elif task.interval_type == IntervalType.MONTHLY.value:
            next_run = base + timedelta(days=30 * value)
        elif task.interval_type == IntervalType.CUSTOM.value and task.custom_schedule:
            next_run = next_custom_run(base, task.custom_schedule)
        else:
            next_run = base + timedelta(days=1)

        now = datetime.utcnow()
        if next_run < now:
            next_run = now + timedelta(minutes=5)
        return next_run

    def log_task_action(self, task_id, task_type, action, status, details=None):
        log = SchedulerLog(
            task_id=task_id,
            task_type=task_type,
            action=action,
            status=status,
            details=details
        )
        db.session.add(log)
        db.session.commit()
        return log

    def get_task_logs(self, task_id, limit=10):
        return SchedulerLog.query.filter_by(task_id=task_id)\
            .order_by(SchedulerLog.created_at.desc(), SchedulerLog.id.desc()).limit(limit).all()

    def cleanup_logs(self, older_than_days=None):
        if older_than_days is None:
            older_than_days = ConfigHelper.get_scheduler_config()['log_retention_days']
        cutoff = datetime.utcnow() - timedelta(days=older_than_days)

        count = SchedulerLog.query.filter(SchedulerLog.created_at < cutoff).delete(synchronize_session=False)
        db.session.commit()

        logger.info(f"Deleted {count} scheduler logs older than {older_than_days} days")
        return count


scheduler_service = SchedulerService()
