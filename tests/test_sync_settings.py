from datetime import datetime, timedelta

import pytest

from database import db
from models import ScheduledTask, SyncSettings
from scheduler_service import scheduler_service
from sync_settings import SyncSettingsService

BASE = datetime(2030, 1, 7, 10, 0)


@pytest.fixture
def service():
    return SyncSettingsService()


def sync_tasks(settings):
    return ScheduledTask.query.filter_by(entity_type='sync_settings', entity_id=str(settings.id)).all()


class TestSaveSettings:

    def test_defaults_and_task(self, service):
        settings = service.save_sync_settings('job_portal', 3)

        assert settings.sync_interval_type == 'daily'
        assert settings.sync_interval_value == 1
        assert settings.next_sync > datetime.utcnow() + timedelta(hours=23)

        tasks = sync_tasks(settings)
        assert len(tasks) == 1
        assert tasks[0].task_type == 'sync'
        assert tasks[0].status == 'pending'
        assert tasks[0].next_run == settings.next_sync
        assert tasks[0].config == {'entity_type': 'job_portal', 'entity_id': '3', 'sync_type': 'auto',
                                   'sync_config': None}

    def test_saving_again_updates_the_pending_task(self, service):
        service.save_sync_settings('job_portal', 3)
        settings = service.save_sync_settings('job_portal', 3, sync_interval_type='hourly', config={'full': True})

        tasks = sync_tasks(settings)
        assert len(tasks) == 1
        assert tasks[0].next_run == settings.next_sync
        assert tasks[0].config['sync_config'] == {'full': True}
        assert settings.next_sync < datetime.utcnow() + timedelta(hours=2)

    def test_disabling_removes_tasks(self, service):
        service.save_sync_settings('job_portal', 3)
        settings = service.save_sync_settings('job_portal', 3, enabled=False)

        assert settings.next_sync is None
        assert sync_tasks(settings) == []

    def test_running_task_is_kept(self, service):
        settings = service.save_sync_settings('job_portal', 3)
        task = sync_tasks(settings)[0]
        scheduler_service.update_task_status(task.id, 'running')

        service.save_sync_settings('job_portal', 3, enabled=False)

        assert [t.id for t in sync_tasks(settings)] == [task.id]

    def test_get_all_sync_settings(self, service):
        service.save_sync_settings('job_portal', 1)
        service.save_sync_settings('job_portal', 2, enabled=False)
        service.save_sync_settings('customer', 1)

        assert len(service.get_all_sync_settings()) == 3
        assert len(service.get_all_sync_settings(entity_type='job_portal')) == 2
        assert len(service.get_all_sync_settings(enabled=True)) == 2


class TestEnableAndDelete:

    def test_set_sync_enabled(self, service):
        settings = service.save_sync_settings('job_portal', 3, enabled=False)

        assert service.set_sync_enabled('job_portal', 3, True) is True
        assert settings.next_sync is not None
        assert len(sync_tasks(settings)) == 1

        assert service.set_sync_enabled('job_portal', 3, False) is True
        assert sync_tasks(settings) == []

    def test_set_sync_enabled_without_settings(self, service):
        assert service.set_sync_enabled('job_portal', 99, True) is False

    def test_delete_sync_settings(self, service):
        settings = service.save_sync_settings('job_portal', 3)
        settings_id = settings.id

        assert service.delete_sync_settings('job_portal', 3) is True
        assert service.delete_sync_settings('job_portal', 3) is False
        assert db.session.get(SyncSettings, settings_id) is None
        assert ScheduledTask.query.filter_by(entity_type='sync_settings').count() == 0


class TestSyncRuns:

    def test_update_last_sync(self, service):
        service.save_sync_settings('job_portal', 3, sync_interval_type='weekly')

        settings = service.update_last_sync('job_portal', 3)

        assert settings.last_sync is not None
        assert settings.next_sync == settings.last_sync + timedelta(weeks=1)
        assert sync_tasks(settings)[0].next_run == settings.next_sync

    def test_update_last_sync_when_disabled_or_missing(self, service):
        service.save_sync_settings('job_portal', 3, enabled=False)

        assert service.update_last_sync('job_portal', 3) is None
        assert service.update_last_sync('job_portal', 4) is None

    def test_update_last_sync_with_running_task_creates_new_one(self, service):
        settings = service.save_sync_settings('job_portal', 3)
        running = sync_tasks(settings)[0]
        scheduler_service.update_task_status(running.id, 'running')

        service.update_last_sync('job_portal', 3)

        statuses = sorted(t.status for t in sync_tasks(settings))
        assert statuses == ['pending', 'running']

    def test_get_due_syncs(self, service):
        due = service.save_sync_settings('job_portal', 1)
        later = service.save_sync_settings('job_portal', 2)
        disabled = service.save_sync_settings('job_portal', 3)
        due.next_sync = BASE - timedelta(minutes=1)
        later.next_sync = BASE + timedelta(minutes=1)
        disabled.next_sync = BASE - timedelta(minutes=1)
        disabled.enabled = False
        db.session.commit()

        assert [s.id for s in service.get_due_syncs(BASE)] == [due.id]

    def test_trigger_sync(self, service):
        service.save_sync_settings('job_portal', 3, config={'query': 'python'})

        task = service.trigger_sync('job_portal', 3)

        assert task.task_type == 'sync'
        assert task.entity_type == 'job_portal'
        assert task.entity_id == '3'
        assert task.config['sync_type'] == 'manual'
        assert task.config['sync_config'] == {'query': 'python'}
        assert task.next_run <= datetime.utcnow()

    def test_trigger_sync_with_override_and_missing(self, service):
        service.save_sync_settings('job_portal', 3, config={'query': 'python'})

        assert service.trigger_sync('job_portal', 3, {'query': 'java'}).config['sync_config'] == {'query': 'java'}
        assert service.trigger_sync('job_portal', 4) is None


class TestCalculateNextSync:

    @pytest.mark.parametrize('interval_type, value, expected', [
        ('hourly', 3, BASE + timedelta(hours=3)),
        ('daily', None, BASE + timedelta(days=1)),
        ('weekly', 2, BASE + timedelta(weeks=2)),
        ('monthly', 1, BASE + timedelta(days=30)),
        ('custom', 5, BASE + timedelta(days=1)),
        ('once', 1, BASE + timedelta(hours=1)),
    ])
    def test_intervals(self, interval_type, value, expected):
        settings = SyncSettings(sync_interval_type=interval_type, sync_interval_value=value, last_sync=BASE)

        assert SyncSettingsService.calculate_next_sync(settings) == expected
