import logging
from datetime import datetime, timedelta
from enum import Enum
from database import db
from errors import NotFoundError, ValidationError
from models import Application, Job, JobStatus, PipelineSettings, PostPipelineItem
from scheduler_service import TaskType, scheduler_service

logger = logging.getLogger(__name__)


class PipelineType(Enum):
    SOCIAL_MEDIA = "social_media"
    MOVIDO = "movido"


class PipelineStatus(Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Platform(Enum):
    LINKEDIN = "linkedin"
    XING = "xing"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    OTHER = "other"


# Posting days use 0 = Sunday
DEFAULT_PIPELINE_SETTINGS = {
    'daily_limit': 5,
    'posting_hours': [9, 12, 15],
    'posting_days': [1, 2, 3, 4, 5],
    'min_interval_minutes': 30,
    'enabled': True,
}

SETTINGS_FIELDS = ('daily_limit', 'posting_hours', 'posting_days', 'min_interval_minutes', 'enabled', 'config')


def _js_weekday(moment):
    return (moment.weekday() + 1) % 7


def next_posting_slot(moment, hours=None, days=None):
    """First moment at or after ``moment`` that falls into an allowed hour and day"""
    hours = set(int(h) for h in hours or [])
    days = set(int(d) for d in days or [])

    for _ in range(24 * 8):
        if (not hours or moment.hour in hours) and (not days or _js_weekday(moment) in days):
            return moment
        moment = (moment + timedelta(hours=1)).replace(minute=0, second=0, microsecond=0)
    return moment


class PipelineManager:
    """Queue of social media and Movido posts with per-platform posting rules"""

    def add_to_pipeline(self, pipeline_type, entity_id, entity_type, platform=None, priority=0,
                        scheduled_for=None, content_template=None, content_params=None,
                        target_audience=None, repost_of_id=None):
        if pipeline_type not in [p.value for p in PipelineType]:
            raise ValidationError(f"Unknown pipeline type '{pipeline_type}'")
        if platform and platform not in [p.value for p in Platform]:
            raise ValidationError(f"Unknown platform '{platform}'")

        item = PostPipelineItem(
            pipeline_type=pipeline_type,
            platform=platform,
            entity_id=str(entity_id),
            entity_type=entity_type,
            status=PipelineStatus.PENDING.value,
            priority=priority or 0,
            scheduled_for=scheduled_for,
            content_template=content_template,
            content_params=content_params,
            target_audience=target_audience,
            repost_of_id=repost_of_id
        )
        db.session.add(item)
        db.session.commit()

        logger.info(f"Added {entity_type} {entity_id} to {pipeline_type} pipeline as item {item.id}")
        return item

    def get_item_by_id(self, item_id):
        return db.session.get(PostPipelineItem, item_id)

    def update_item_status(self, item_id, status, result=None, error=None):
        if status not in [s.value for s in PipelineStatus]:
            raise ValidationError(f"Unknown pipeline status '{status}'")

        item = self.get_item_by_id(item_id)
        if not item:
            raise NotFoundError(f"Pipeline item {item_id} not found")

        item.status = status
        if status == PipelineStatus.POSTED.value:
            item.posted_at = datetime.utcnow()
        if result is not None:
            item.result = result
        if error is not None:
            item.error = error
        db.session.commit()
        return item

    def remove_from_pipeline(self, item_id):
        item = self.get_item_by_id(item_id)
        if not item:
            return False

        db.session.delete(item)
        db.session.commit()
        return True

    def get_items(self, status=None, pipeline_type=None, platform=None, entity_type=None, entity_id=None,
                  from_date=None, to_date=None, min_priority=None, limit=None, offset=0):
        query = PostPipelineItem.query
        if status:
            if isinstance(status, (list, tuple)):
                query = query.filter(PostPipelineItem.status.in_(status))
            else:
                query = query.filter_by(status=status)
        if pipeline_type:
            query = query.filter_by(pipeline_type=pipeline_type)
        if platform:
            query = query.filter_by(platform=platform)
        if entity_type:
            query = query.filter_by(entity_type=entity_type)
        if entity_id is not None:
            query = query.filter_by(entity_id=str(entity_id))
        if from_date:
            query = query.filter(PostPipelineItem.scheduled_for >= from_date)
        if to_date:
            query = query.filter(PostPipelineItem.scheduled_for <= to_date)
        if min_priority is not None:
            query = query.filter(PostPipelineItem.priority >= min_priority)

        query = query.order_by(PostPipelineItem.priority.desc(), PostPipelineItem.scheduled_for.asc(),
                               PostPipelineItem.id.asc())
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def posted_today_count(self, pipeline_type, platform=None):
        start_of_day = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        query = PostPipelineItem.query.filter(
            PostPipelineItem.pipeline_type == pipeline_type,
            PostPipelineItem.status == PipelineStatus.POSTED.value,
            PostPipelineItem.posted_at >= start_of_day
        )
        if platform:
            query = query.filter(PostPipelineItem.platform == platform)
        return query.count()

    def get_next_items_to_post(self, pipeline_type, platform=None, limit=5):
        settings = self.get_pipeline_settings(pipeline_type, platform)
        if not settings or not settings.enabled:
            return []

        remaining = max(0, (settings.daily_limit or DEFAULT_PIPELINE_SETTINGS['daily_limit']) -
                        self.posted_today_count(pipeline_type, platform))
        if remaining <= 0:
            logger.info(f"Daily limit reached for {pipeline_type} {platform or ''}".strip())
            return []

        return self.get_items(status=PipelineStatus.PENDING.value, pipeline_type=pipeline_type,
                              platform=platform, limit=min(remaining, limit))

    # Settings

    def get_pipeline_settings(self, pipeline_type, platform=None):
        return PipelineSettings.query.filter_by(pipeline_type=pipeline_type, platform=platform).first()

    def get_all_pipeline_settings(self, pipeline_type=None):
        query = PipelineSettings.query
        if pipeline_type:
            query = query.filter_by(pipeline_type=pipeline_type)
        return query.order_by(PipelineSettings.pipeline_type, PipelineSettings.platform).all()

    def save_pipeline_settings(self, pipeline_type, platform=None, **fields):
        if pipeline_type not in [p.value for p in PipelineType]:
            raise ValidationError(f"Unknown pipeline type '{pipeline_type}'")

        settings = self.get_pipeline_settings(pipeline_type, platform)
        if not settings:
            settings = PipelineSettings(pipeline_type=pipeline_type, platform=platform, **DEFAULT_PIPELINE_SETTINGS)
            db.session.add(settings)

        for field in SETTINGS_FIELDS:
            if field in fields and fields[field] is not None:
                setattr(settings, field, fields[field])

        db.session.commit()
        return settings

    def set_pipeline_enabled(self, pipeline_type, platform, enabled):
        settings = self.get_pipeline_settings(pipeline_type, platform)
        if not settings:
            return False

        settings.enabled = bool(enabled)
        db.session.commit()
        return True

    # Scheduling

    def schedule_item_posting(self, item_id, scheduled_for):
        item = self.get_item_by_id(item_id)
        if not item:
            raise NotFoundError(f"Pipeline item {item_id} not found")

        if item.pipeline_type == PipelineType.SOCIAL_MEDIA.value:
            task_type = TaskType.SOCIAL_POST.value
        else:
            task_type = TaskType.MOVIDO_POST.value

        task = scheduler_service.create_task(
            task_type,
            scheduled_for,
            entity_id=item.id,
            entity_type='post_pipeline_item',
            config={
                'pipeline_type': item.pipeline_type,
                'platform': item.platform,
                'entity_id': item.entity_id,
                'entity_type': item.entity_type,
            }
        )

        item.scheduled_task_id = task.id
        item.scheduled_for = task.scheduled_for
        item.status = PipelineStatus.SCHEDULED.value
        db.session.commit()
        return task

    def schedule_pipeline_posts(self, pipeline_type, platform=None, max_items=10):
        """Spread pending items over the allowed posting slots, returns the count"""
        settings = self.get_pipeline_settings(pipeline_type, platform)
        if not settings or not settings.enabled:
            return 0

        items = self.get_items(status=PipelineStatus.PENDING.value, pipeline_type=pipeline_type,
                               platform=platform, limit=max_items)
        if not items:
            return 0

        hours = settings.posting_hours
        days = settings.posting_days
        interval = timedelta(minutes=settings.min_interval_minutes or DEFAULT_PIPELINE_SETTINGS['min_interval_minutes'])

        start = datetime.utcnow().replace(second=0, microsecond=0)
        if hours:
            start = (start + timedelta(hours=1)).replace(minute=0)
        posting_time = next_posting_slot(start, hours, days)

        for item in items:
            self.schedule_item_posting(item.id, posting_time)
            posting_time = next_posting_slot(posting_time + interval, hours, days)

        logger.info(f"Scheduled {len(items)} {pipeline_type} posts")
        return len(items)

    def create_social_media_post_item(self, entity_type, entity_id, platform, post_config=None, priority=0):
        return self.add_to_pipeline(
            PipelineType.SOCIAL_MEDIA.value, entity_id, entity_type,
            platform=platform,
            priority=priority,
            content_template='default',
            content_params=post_config or {}
        )

    def create_movido_post_item(self, entity_type, entity_id, post_config=None, priority=0):
        return self.add_to_pipeline(
            PipelineType.MOVIDO.value, entity_id, entity_type,
            priority=priority,
            content_template='movido_default',
            content_params=post_config or {}
        )

    def check_and_schedule_job_reposts(self, days_to_wait=7, min_applications=3, max_reposts=3):
        """Queue reposts for active jobs that attracted too few applications.

        A job qualifies when its last post is older than ``days_to_wait``, it
        has fewer than ``min_applications`` applications, has been reposted
        fewer than ``max_reposts`` times and nothing for it is still queued.
        Returns the new pipeline items.
        """
        cutoff = datetime.utcnow() - timedelta(days=days_to_wait)
        created = []

        for job in Job.query.filter(Job.status == JobStatus.ACTIVE).all():
            items = PostPipelineItem.query.filter_by(entity_type='job', entity_id=str(job.id)).all()
            posted = [i for i in items if i.status == PipelineStatus.POSTED.value]
            if not posted:
                continue
            if any(i.status in (PipelineStatus.PENDING.value, PipelineStatus.SCHEDULED.value) for i in items):
                continue
            if sum(1 for i in items if i.repost_of_id) >= max_reposts:
                continue

            last_post = max(posted, key=lambda i: i.posted_at or datetime.min)
            if not last_post.posted_at or last_post.posted_at > cutoff:
                continue

            application_count = Application.query.filter_by(job_id=job.id).count()
            if application_count >= min_applications:
                continue

            item = self.add_to_pipeline(
                last_post.pipeline_type, job.id, 'job',
                platform=last_post.platform,
                priority=last_post.priority,
                content_template=last_post.content_template,
                content_params=last_post.content_params,
                target_audience=last_post.target_audience,
                repost_of_id=last_post.id
            )
            created.append(item)
            logger.info(f"Queued repost of job {job.id} ({application_count} applications)")

        return created


pipeline_manager = PipelineManager()
