from datetime import datetime, timedelta

import pytest

from database import db
from errors import NotFoundError, ValidationError
from models import PostPipelineItem, ScheduledTask
from pipeline import DEFAULT_PIPELINE_SETTINGS, PipelineManager, next_posting_slot


@pytest.fixture
def manager():
    return PipelineManager()


def posted_item(manager, job, days_ago, **fields):
    item = manager.add_to_pipeline('social_media', job.id, 'job', platform='linkedin', **fields)
    item.status = 'posted'
    item.posted_at = datetime.utcnow() - timedelta(days=days_ago)
    db.session.commit()
    return item


class TestPostingSlots:

    def test_next_allowed_hour(self):
        # Monday
        assert next_posting_slot(datetime(2030, 1, 7, 10, 0), [9, 12, 15], [1, 2, 3, 4, 5]) == \
            datetime(2030, 1, 7, 12, 0)

    def test_weekend_is_skipped(self):
        # Friday after the last slot
        assert next_posting_slot(datetime(2030, 1, 11, 16, 0), [9, 12, 15], [1, 2, 3, 4, 5]) == \
            datetime(2030, 1, 14, 9, 0)

    def test_inside_allowed_hour_keeps_moment(self):
        moment = datetime(2030, 1, 7, 9, 30)
        assert next_posting_slot(moment, [9], [1]) == moment

    def test_no_restrictions(self):
        moment = datetime(2030, 1, 6, 3, 17)
        assert next_posting_slot(moment) == moment


class TestPipelineItems:

    def test_add_to_pipeline(self, manager):
        item = manager.add_to_pipeline('social_media', 5, 'job', platform='xing', priority=2)

        assert item.status == 'pending'
        assert item.entity_id == '5'
        assert item.priority == 2

    def test_add_rejects_unknown_type_or_platform(self, manager):
        with pytest.raises(ValidationError):
            manager.add_to_pipeline('newsletter', 5, 'job')
        with pytest.raises(ValidationError):
            manager.add_to_pipeline('social_media', 5, 'job', platform='myspace')

    def test_update_item_status(self, manager):
        item = manager.add_to_pipeline('movido', 5, 'job')

        manager.update_item_status(item.id, 'posted', result={'post_id': 'm-1'})

        assert item.status == 'posted'
        assert item.posted_at is not None
        assert item.result == {'post_id': 'm-1'}

    def test_update_item_status_errors(self, manager):
        item = manager.add_to_pipeline('movido', 5, 'job')

        with pytest.raises(ValidationError):
            manager.update_item_status(item.id, 'archived')
        with pytest.raises(NotFoundError):
            manager.update_item_status(999, 'posted')

    def test_remove_from_pipeline(self, manager):
        item = manager.add_to_pipeline('movido', 5, 'job')

        assert manager.remove_from_pipeline(item.id) is True
        assert manager.remove_from_pipeline(item.id) is False

    def test_get_items_order_and_filters(self, manager):
        low = manager.add_to_pipeline('social_media', 1, 'job', platform='linkedin', priority=0)
        high = manager.add_to_pipeline('social_media', 2, 'job', platform='xing', priority=5)
        movido = manager.add_to_pipeline('movido', 3, 'job', priority=1)
        manager.update_item_status(movido.id, 'failed')

        assert [i.id for i in manager.get_items()] == [high.id, movido.id, low.id]
        assert [i.id for i in manager.get_items(status='pending')] == [high.id, low.id]
        assert [i.id for i in manager.get_items(status=['pending', 'failed'], min_priority=1)] == \
            [high.id, movido.id]
        assert [i.id for i in manager.get_items(platform='linkedin')] == [low.id]
        assert [i.id for i in manager.get_items(pipeline_type='movido')] == [movido.id]
        assert [i.id for i in manager.get_items(entity_id=2, entity_type='job')] == [high.id]
        assert len(manager.get_items(limit=1, offset=1)) == 1

    def test_get_items_by_date_range(self, manager):
        early = manager.add_to_pipeline('movido', 1, 'job', scheduled_for=datetime(2030, 1, 1))
        manager.add_to_pipeline('movido', 2, 'job', scheduled_for=datetime(2030, 3, 1))

        items = manager.get_items(from_date=datetime(2029, 12, 1), to_date=datetime(2030, 2, 1))

        assert [i.id for i in items] == [early.id]

    def test_post_item_helpers(self, manager):
        social = manager.create_social_media_post_item('job', 1, 'linkedin', {'hashtags': ['jobs']}, priority=3)
        movido = manager.create_movido_post_item('job', 1)

        assert social.content_template == 'default'
        assert social.content_params == {'hashtags': ['jobs']}
        assert social.platform == 'linkedin'
        assert movido.content_template == 'movido_default'
        assert movido.pipeline_type == 'movido'
        assert movido.content_params == {}


class TestPipelineSettings:

    def test_save_uses_defaults(self, manager):
        settings = manager.save_pipeline_settings('social_media', 'linkedin', daily_limit=3)

        assert settings.daily_limit == 3
        assert settings.posting_hours == DEFAULT_PIPELINE_SETTINGS['posting_hours']
        assert settings.enabled is True

    def test_save_updates_existing(self, manager):
        manager.save_pipeline_settings('social_media', 'linkedin')
        manager.save_pipeline_settings('social_media', 'linkedin', posting_hours=[10], daily_limit=None)

        settings = manager.get_pipeline_settings('social_media', 'linkedin')
        assert settings.posting_hours == [10]
        assert settings.daily_limit == 5
        assert len(manager.get_all_pipeline_settings()) == 1

    def test_save_rejects_unknown_type(self, manager):
        with pytest.raises(ValidationError):
            manager.save_pipeline_settings('print')

    def test_enable_and_disable(self, manager):
        manager.save_pipeline_settings('movido')

        assert manager.set_pipeline_enabled('movido', None, False) is True
        assert manager.get_pipeline_settings('movido').enabled is False
        assert manager.set_pipeline_enabled('social_media', 'xing', True) is False

    def test_get_all_filters_by_type(self, manager):
        manager.save_pipeline_settings('movido')
        manager.save_pipeline_settings('social_media', 'xing')

        assert [s.pipeline_type for s in manager.get_all_pipeline_settings('movido')] == ['movido']


class TestNextItems:

    def test_without_settings_nothing_is_posted(self, manager):
        manager.add_to_pipeline('movido', 1, 'job')

        assert manager.get_next_items_to_post('movido') == []

    def test_disabled_pipeline(self, manager):
        manager.save_pipeline_settings('movido', enabled=False)
        manager.add_to_pipeline('movido', 1, 'job')

        assert manager.get_next_items_to_post('movido') == []

    def test_daily_limit(self, manager):
        manager.save_pipeline_settings('movido', daily_limit=2)
        done = manager.add_to_pipeline('movido', 1, 'job')
        manager.update_item_status(done.id, 'posted')
        first = manager.add_to_pipeline('movido', 2, 'job', priority=1)
        manager.add_to_pipeline('movido', 3, 'job')

        assert [i.id for i in manager.get_next_items_to_post('movido')] == [first.id]

    def test_daily_limit_reached(self, manager):
        manager.save_pipeline_settings('movido', daily_limit=1)
        done = manager.add_to_pipeline('movido', 1, 'job')
        manager.update_item_status(done.id, 'posted')
        manager.add_to_pipeline('movido', 2, 'job')

        assert manager.posted_today_count('movido') == 1
        assert manager.get_next_items_to_post('movido') == []


class TestScheduling:

    def test_schedule_item_posting(self, manager):
        item = manager.add_to_pipeline('social_media', 7, 'job', platform='xing')
        when = datetime(2030, 1, 7, 9, 0)

        task = manager.schedule_item_posting(item.id, when)

        assert task.task_type == 'social_post'
        assert task.entity_type == 'post_pipeline_item'
        assert task.entity_id == str(item.id)
        assert task.config['platform'] == 'xing'
        assert item.status == 'scheduled'
        assert item.scheduled_task_id == task.id
        assert item.scheduled_for == when

    def test_movido_items_get_movido_tasks(self, manager):
        item = manager.add_to_pipeline('movido', 7, 'job')

        assert manager.schedule_item_posting(item.id, datetime(2030, 1, 7)).task_type == 'movido_post'

    def test_schedule_missing_item(self, manager):
        with pytest.raises(NotFoundError):
            manager.schedule_item_posting(999, datetime(2030, 1, 7))

    def test_schedule_pipeline_posts_respects_interval(self, manager):
        manager.save_pipeline_settings('movido', posting_hours=[], posting_days=[], min_interval_minutes=45)
        for entity_id in range(3):
            manager.add_to_pipeline('movido', entity_id, 'job')

        assert manager.schedule_pipeline_posts('movido', max_items=2) == 2

        tasks = ScheduledTask.query.order_by(ScheduledTask.scheduled_for).all()
        assert len(tasks) == 2
        assert tasks[1].scheduled_for - tasks[0].scheduled_for == timedelta(minutes=45)
        assert PostPipelineItem.query.filter_by(status='pending').count() == 1

    def test_schedule_pipeline_posts_uses_posting_slots(self, manager):
        manager.save_pipeline_settings('social_media', 'linkedin', posting_hours=[9, 15], posting_days=[1, 3])
        for entity_id in range(4):
            manager.add_to_pipeline('social_media', entity_id, 'job', platform='linkedin')

        manager.schedule_pipeline_posts('social_media', 'linkedin')

        times = [t.scheduled_for for t in ScheduledTask.query.order_by(ScheduledTask.scheduled_for).all()]
        assert len(times) == 4
        assert all(t.hour in (9, 15) for t in times)
        assert all((t.weekday() + 1) % 7 in (1, 3) for t in times)
        assert all(later - earlier >= timedelta(minutes=30) for earlier, later in zip(times, times[1:]))
        assert times[0] > datetime.utcnow()

    def test_schedule_pipeline_posts_disabled(self, manager):
        manager.save_pipeline_settings('movido', enabled=False)
        manager.add_to_pipeline('movido', 1, 'job')

        assert manager.schedule_pipeline_posts('movido') == 0


class TestReposts:

    def test_repost_for_job_with_few_applications(self, manager, make_job, make_application):
        job = make_job()
        make_application(job=job)
        original = posted_item(manager, job, days_ago=10, content_params={'post_template': 'Hi'})

        created = manager.check_and_schedule_job_reposts()

        assert len(created) == 1
        assert created[0].repost_of_id == original.id
        assert created[0].platform == 'linkedin'
        assert created[0].content_params == {'post_template': 'Hi'}
        assert created[0].status == 'pending'

    def test_no_repost_when_recently_posted(self, manager, make_job):
        posted_item(manager, make_job(), days_ago=2)

        assert manager.check_and_schedule_job_reposts() == []

    def test_no_repost_with_enough_applications(self, manager, make_job, make_application):
        job = make_job()
        for _ in range(3):
            make_application(job=job)
        posted_item(manager, job, days_ago=10)

        assert manager.check_and_schedule_job_reposts() == []

    def test_no_repost_while_queued(self, manager, make_job):
        job = make_job()
        posted_item(manager, job, days_ago=10)
        manager.add_to_pipeline('social_media', job.id, 'job', platform='linkedin')

        assert manager.check_and_schedule_job_reposts() == []

    def test_repost_limit(self, manager, make_job):
        job = make_job()
        original = posted_item(manager, job, days_ago=30)
        posted_item(manager, job, days_ago=20, repost_of_id=original.id)

        assert manager.check_and_schedule_job_reposts(max_reposts=1) == []
        assert len(manager.check_and_schedule_job_reposts(max_reposts=2)) == 1

    def test_inactive_jobs_are_ignored(self, manager, make_job):
        from models import JobStatus

        posted_item(manager, make_job(status=JobStatus.CLOSED), days_ago=10)

        assert manager.check_and_schedule_job_reposts() == []
