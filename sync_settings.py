import logging
from datetime import datetime, timedelta
from database import db
from models import SyncSettings
from scheduler_service import IntervalType, TaskStatus, TaskType, scheduler_service

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = ('sync_interval_type', 'sync_interval_value', 'custom_schedule', 'enabled', 'config')


class SyncSettingsService:
    """Per-entity synchronization intervals backed by one pending ``sync`` task"""

    def get_sync_settings(self, entity_type, entity_id):
        return SyncSettings.query.filter_by(entity_type=entity_type, entity_id=str(entity_id)).first()

    def get_all_sync_settings(self, entity_type=None, enabled=None):
        query = SyncSettings.query
        if entity_type:
            query = query.filter_by(entity_type=entity_type)
        if enabled is not None:
            query = query.filter_by(enabled=bool(enabled))
        return query.order_by(SyncSettings.entity_type, SyncSettings.entity_id).all()

    def save_sync_settings(self, entity_type, entity_id, **fields):
        settings = self.get_sync_settings(entity_type, entity_id)
        if not settings:
            settings = SyncSettings(entity_type=entity_type, entity_id=str(entity_id),
                                    sync_interval_type=IntervalType.DAILY.value, sync_interval_value=1,
                                    enabled=True)
            db.session.add(settings)

        for field in SETTINGS_FIELDS:
            if field in fields and fields[field] is not None:
                setattr(settings, field, fields[field])

        settings.next_sync = self.calculate_next_sync(settings) if settings.enabled else None
        db.session.commit()

        if settings.enabled:
            self._create_or_update_sync_task(settings)
        else:
            self._remove_sync_task(settings)
        return settings

    def set_sync_enabled(self, entity_type, entity_id, enabled):
        settings = self.get_sync_settings(entity_type, entity_id)
        if not settings:
            return False

        settings.enabled = bool(enabled)
        settings.next_sync = self.calculate_next_sync(settings) if settings.enabled else None
        db.session.commit()

        if settings.enabled:
            self._create_or_update_sync_task(settings)
        else:
            self._remove_sync_task(settings)
        return True

    def delete_sync_settings(self, entity_type, entity_id):
        settings = self.get_sync_settings(entity_type, entity_id)
        if not settings:
            return False

        self._remove_sync_task(settings)
        db.session.delete(settings)
        db.session.commit()
        return True

    def update_last_sync(self, entity_type, entity_id):
        """Stamp a finished sync and plan the next one, None when disabled"""
        settings = self.get_sync_settings(entity_type, entity_id)
        if not settings or not settings.enabled:
            return None

        settings.last_sync = datetime.utcnow()
        settings.next_sync = self.calculate_next_sync(settings)
        db.session.commit()

        self._create_or_update_sync_task(settings)
        return settings

    def get_due_syncs(self, now=None):
        now = now or datetime.utcnow()
        return SyncSettings.query.filter(
            SyncSettings.enabled.is_(True),
            SyncSettings.next_sync <= now
        ).order_by(SyncSettings.next_sync.asc()).all()

    @staticmethod
    def calculate_next_sync(settings):
        base = settings.last_sync or datetime.utcnow()
        value = settings.sync_interval_value or 1
        interval_type = settings.sync_interval_type

        if interval_type == IntervalType.HOURLY.value:
            return base + timedelta(hours=value)
        if interval_type == IntervalType.DAILY.value:
            return base + timedelta(days=value)
        if interval_type == IntervalType.WEEKLY.value:
            return base + timedelta(weeks=value)
        if interval_type == IntervalType.MONTHLY.value:
            return base + timedelta(days=30 * value)
        if interval_type == IntervalType.CUSTOM.value:
            return base + timedelta(days=1)
        return base + timedelta(hours=1)

    def trigger_sync(self, entity_type, entity_id, config=None):
        """Queue an immediate manual sync, None when the entity has no settings"""
        settings = self.get_sync_settings(entity_type, entity_id)
        if not settings:
            return None

        return scheduler_service.create_task(
            TaskType.SYNC.value,
            datetime.utcnow(),
            entity_type=entity_type,
            entity_id=entity_id,
            config={
                'entity_type': entity_type,
                'entity_id': str(entity_id),
                'sync_type': 'manual',
                'sync_config': config if config is not None else settings.config,
            }
        )

    def _task_config(self, settings):
        return {
            'entity_type': settings.entity_type,
            'entity_id': settings.entity_id,
            'sync_type': 'auto',
            'sync_config': settings.config,
        }

    def _create_or_update_sync_task(self, settings):
        pending = scheduler_service.get_tasks(status=TaskStatus.PENDING.value, entity_type='sync_settings',
                                              entity_id=settings.id)
        scheduled_for = settings.next_sync or datetime.utcnow()

        if pending:
            return scheduler_service.update_task(pending[0].id, scheduled_for=scheduled_for,
                                                 config=self._task_config(settings))

        # Recurrence is driven by the settings row, so each task runs once
        return scheduler_service.create_task(
            TaskType.SYNC.value,
            scheduled_for,
            entity_type='sync_settings',
            entity_id=settings.id,
            config=self._task_config(settings)
        )

    def _remove_sync_task(self, settings):
        tasks = scheduler_service.get_tasks(entity_type='sync_settings', entity_id=settings.id)
        for task in tasks:
            if task.status != TaskStatus.RUNNING.value:
                scheduler_service.delete_task(task.id)


sync_settings_service = SyncSettingsService()
