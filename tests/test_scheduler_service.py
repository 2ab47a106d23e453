from datetime import datetime, timedelta

import pytest

from database import db
from errors import InvalidTransitionError, NotFoundError
from models import ScheduledTask, SchedulerLog
from scheduler_service import SchedulerService, next_custom_run

# Monday
BASE = datetime(2030, 1, 7, 10, 30)


@pytest.fixture
def service():
    return SchedulerService()


class TestCustomSchedule:

    def test_later_hour_same_day(self):
        assert next_custom_run(BASE, {'hours': [9, 15]}) == datetime(2030, 1, 7, 15, 0)

    def test_rolls_over_to_next_day(self):
        assert next_custom_run(BASE, {'hours': [9]}) == datetime(2030, 1, 8, 9, 0)

    def test_weekday_filter(self):
        assert next_custom_run(BASE, {'days': [5], 'hours': [9]}) == datetime(2030, 1, 11, 9, 0)

    def test_excluded_dates_are_skipped(self):
        schedule = {'days': [1], 'hours': [9], 'exclude_dates': ['2030-01-14']}

        assert next_custom_run(BASE, schedule) == datetime(2030, 1, 21, 9, 0)

    def test_keeps_time_of_day_without_hours(self):
        assert next_custom_run(BASE, {'days': [3]}) == datetime(2030, 1, 9, 10, 30)

    def test_specific_dates_win(self):
        schedule = {'days': [1], 'hours': [9], 'specific_dates': ['2031-05-01T08:00:00', '2030-02-01T08:00:00']}

        assert next_custom_run(BASE, schedule) == datetime(2030, 2, 1, 8, 0)

    def test_empty_schedule_is_daily(self):
        assert next_custom_run(BASE, {}) == BASE + timedelta(days=1)


class TestCalculateNextRun:

    def _task(self, interval_type, interval_value=None, **fields):
        return ScheduledTask(task_type='sync', scheduled_for=BASE, interval_type=interval_type,
                             interval_value=interval_value, **fields)

    @pytest.mark.parametrize('interval_type, value, expected', [
        ('hourly', 2, BASE + timedelta(hours=2)),
        ('daily', None, BASE + timedelta(days=1)),
        ('weekly', 1, BASE + timedelta(weeks=1)),
        ('monthly', 2, BASE + timedelta(days=60)),
        ('custom', None, BASE + timedelta(days=1)),
    ])
    def test_intervals(self, service, interval_type, value, expected):
        assert service.calculate_next_run(self._task(interval_type, value)) == expected

    def test_custom_schedule(self, service):
        task = self._task('custom', custom_schedule={'hours': [15]})

        assert service.calculate_next_run(task) == datetime(2030, 1, 7, 15, 0)

    def test_once_has_no_next_run(self, service):
        assert service.calculate_next_run(self._task('once')) is None

    def test_last_run_is_the_base(self, service):
        task = self._task('daily', last_run=BASE + timedelta(days=3))

        assert service.calculate_next_run(task) == BASE + timedelta(days=4)

    def test_past_runs_are_pushed_into_the_future(self, service):
        task = ScheduledTask(task_type='sync', scheduled_for=datetime(2000, 1, 1), interval_type='daily')

        next_run = service.calculate_next_run(task)

        assert datetime.utcnow() < next_run <= datetime.utcnow() + timedelta(minutes=5)


class TestTaskLifecycle:

    def test_create_task(self, service):
        task = service.create_task('sync', '2030-01-07T10:30:00Z', config={'full': True}, entity_id=5,
                                   entity_type='job_portal', created_by=1)

        assert task.status == 'pending'
        assert task.scheduled_for == BASE
        assert task.next_run == BASE
        assert task.entity_id == '5'
        assert task.created_by == '1'
        assert [log.action for log in service.get_task_logs(task.id)] == ['create']

    def test_one_off_task_completes(self, service):
        task = service.create_task('custom', BASE)

        service.update_task_status(task.id, 'running')
        service.update_task_status(task.id, 'completed', result={'ok': True})

        assert task.status == 'completed'
        assert task.result == {'ok': True}
        assert task.last_run is not None
        assert [log.action for log in service.get_task_logs(task.id)] == ['complete', 'start', 'create']

    def test_recurring_task_returns_to_pending(self, service):
        task = service.create_task('sync', datetime.utcnow(), interval_type='hourly')

        service.update_task_status(task.id, 'running')
        service.update_task_status(task.id, 'failed', error='timeout')

        assert task.status == 'pending'
        assert task.error == 'timeout'
        assert task.next_run > datetime.utcnow()

    @pytest.mark.parametrize('path, target', [
        ([], 'completed'),
        ([], 'failed'),
        (['cancelled'], 'pending'),
        (['running', 'completed'], 'running'),
    ])
    def test_invalid_transitions(self, service, path, target):
        task = service.create_task('custom', BASE)
        for status in path:
            service.update_task_status(task.id, status)

        with pytest.raises(InvalidTransitionError):
            service.update_task_status(task.id, target)

    def test_failed_task_can_be_retried(self, service):
        task = service.create_task('custom', BASE)
        service.update_task_status(task.id, 'running')
        service.update_task_status(task.id, 'failed', error='boom')

        assert service.update_task_status(task.id, 'pending').status == 'pending'
        assert service.get_task_logs(task.id, limit=1)[0].action == 'retry'

    def test_missing_task(self, service):
        with pytest.raises(NotFoundError):
            service.update_task_status(999, 'running')

    def test_update_task_moves_next_run(self, service):
        task = service.create_task('custom', BASE)

        service.update_task(task.id, scheduled_for='2030-02-01T12:00:00', config={'a': 1}, status='completed')

        assert task.next_run == datetime(2030, 2, 1, 12, 0)
        assert task.config == {'a': 1}
        assert task.status == 'pending'

    def test_delete_task(self, service):
        task = service.create_task('custom', BASE)

        assert service.delete_task(task.id) is True
        assert service.delete_task(task.id) is False
        assert SchedulerLog.query.filter_by(task_id=task.id, action='cancel').count() == 1


class TestQueries:

    def test_get_due_tasks(self, service):
        now = datetime(2030, 1, 7, 12, 0)
        due = service.create_task('sync', now - timedelta(minutes=5))
        service.create_task('sync', now + timedelta(minutes=5))
        running = service.create_task('sync', now - timedelta(hours=1))
        service.update_task_status(running.id, 'running')

        assert [t.id for t in service.get_due_tasks(now)] == [due.id]

    def test_get_tasks_filters_and_order(self, service):
        later = service.create_task('sync', BASE + timedelta(hours=1), entity_id=1, entity_type='job')
        earlier = service.create_task('social_post', BASE, entity_id=2, entity_type='job')

        assert [t.id for t in service.get_tasks()] == [earlier.id, later.id]
        assert [t.id for t in service.get_tasks(task_type='sync')] == [later.id]
        assert [t.id for t in service.get_tasks(entity_id=2, entity_type='job')] == [earlier.id]
        assert service.get_tasks(status='running') == []
        assert len(service.get_tasks(limit=1, offset=1)) == 1

    def test_get_next_pending_tasks(self, service):
        for hours in (3, 1, 2):
            service.create_task('sync', BASE + timedelta(hours=hours))

        tasks = service.get_next_pending_tasks(limit=2)

        assert [t.next_run for t in tasks] == [BASE + timedelta(hours=1), BASE + timedelta(hours=2)]

    def test_cleanup_logs(self, service):
        task = service.create_task('sync', BASE)
        old = service.log_task_action(task.id, 'sync', 'start', 'running')
        old.created_at = datetime.utcnow() - timedelta(days=60)
        db.session.commit()

        assert service.cleanup_logs(older_than_days=30) == 1
        assert SchedulerLog.query.count() == 1
