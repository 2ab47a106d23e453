import logging
from datetime import datetime
from database import db
from editing_locks import editing_lock_service
from errors import NotFoundError
from matching.customer_requirement_matcher import customer_requirement_matcher
from matching.portal_matching import portal_matching_service
from models import SyncSettings
from notifications import notification_service
from pipeline import PipelineStatus, PipelineType, pipeline_manager
from publishers import movido_publisher, social_media_publisher
from scheduler_service import TaskStatus, TaskType, scheduler_service
from sync_settings import sync_settings_service
from utils import log_processing_time

logger = logging.getLogger(__name__)


def _sync_target(task):
    """(entity_type, entity_id) a sync task works on"""
    config = task.config or {}
    if config.get('entity_type') and config.get('entity_id') is not None:
        return config['entity_type'], str(config['entity_id'])

    if task.entity_type == 'sync_settings' and task.entity_id:
        settings = db.session.get(SyncSettings, int(task.entity_id))
        if settings:
            return settings.entity_type, settings.entity_id

    return task.entity_type, task.entity_id


def execute_post(task):
    item = pipeline_manager.get_item_by_id(int(task.entity_id)) if task.entity_id else None
    if not item:
        raise NotFoundError(f"Pipeline item {task.entity_id} not found")

    if item.pipeline_type == PipelineType.MOVIDO.value:
        publisher = movido_publisher
    else:
        publisher = social_media_publisher

    try:
        result = publisher.publish(item)
    except Exception as e:
        pipeline_manager.update_item_status(item.id, PipelineStatus.FAILED.value, error=str(e))
        raise

    pipeline_manager.update_item_status(item.id, PipelineStatus.POSTED.value, result=result)
    return {'item_id': item.id, **result}


def execute_sync(task):
    entity_type, entity_id = _sync_target(task)
    settings = sync_settings_service.update_last_sync(entity_type, entity_id)
    return {
        'entity_type': entity_type,
        'entity_id': entity_id,
        'next_sync': settings.next_sync.isoformat() if settings and settings.next_sync else None,
    }


def execute_portal_sync(task):
    result = execute_sync(task)
    portal_ids = None
    if result['entity_type'] == 'job_portal' and str(result['entity_id']).isdigit():
        portal_ids = [int(result['entity_id'])]

    jobs = portal_matching_service.fetch_portal_jobs(portal_ids)
    result['portal_jobs'] = len(jobs)
    return result


def execute_pipeline_processor(task):
    config = task.config or {}
    max_items = config.get('max_items', 10)
    scheduled = {}

    for settings in pipeline_manager.get_all_pipeline_settings():
        if not settings.enabled:
            continue
        key = f"{settings.pipeline_type}:{settings.platform or 'all'}"
        scheduled[key] = pipeline_manager.schedule_pipeline_posts(settings.pipeline_type, settings.platform,
                                                                  max_items)

    if config.get('check_reposts'):
        reposts = pipeline_manager.check_and_schedule_job_reposts(
            config.get('days_to_wait', 7), config.get('min_applications', 3), config.get('max_reposts', 3))
        scheduled['reposts'] = len(reposts)

    return {'scheduled': scheduled}


def execute_job_refresh(task):
    config = task.config or {}
    total = customer_requirement_matcher.run_full_matching(config.get('min_score'))

    notification_service.notify_roles(
        ['admin', 'recruiter'],
        'Requirement matching finished',
        f"Found {total} potential matches between customer requirements and "
        f"candidates, applications and talent pool entries.",
        category='matchings',
        entity_type='system',
        entity_id='customer_requirement_matching',
        action='matching_completed',
        importance='normal' if total > 0 else 'low'
    )
    return {'total_matches': total}


def execute_data_cleanup(task):
    config = (task.config if task else None) or {}
    return {
        'expired_locks': editing_lock_service.cleanup_expired_locks(),
        'deleted_matches': customer_requirement_matcher.cleanup_matches(config.get('match_days')),
        'deleted_logs': scheduler_service.cleanup_logs(config.get('log_days')),
    }


def execute_custom(task):
    return {'config': task.config}


EXECUTORS = {
    TaskType.SOCIAL_POST.value: execute_post,
    TaskType.MOVIDO_POST.value: execute_post,
    TaskType.SYNC.value: execute_sync,
    TaskType.PORTAL_SYNC.value: execute_portal_sync,
    TaskType.PIPELINE_PROCESSOR.value: execute_pipeline_processor,
    TaskType.JOB_REFRESH.value: execute_job_refresh,
    TaskType.DATA_CLEANUP.value: execute_data_cleanup,
    TaskType.CUSTOM.value: execute_custom,
}


def execute_task(task):
    executor = EXECUTORS.get(task.task_type)
    if not executor:
        raise ValueError(f"No executor for task type '{task.task_type}'")
    return executor(task)


@log_processing_time
def run_scheduler_pass(now=None):
    """Run every due task and stamp every due sync once"""
    now = now or datetime.utcnow()
    tasks_processed = 0
    syncs_processed = 0
    errors = []

    for task in scheduler_service.get_due_tasks(now):
        task_id = task.id
        try:
            claimed = scheduler_service.claim_task(task_id)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Could not claim task {task_id}: {e}")
            errors.append({'task_id': task_id, 'error': str(e)})
            continue
        if not claimed:
            logger.info(f"Task {task_id} was claimed by another runner, skipping")
            continue

        try:
            result = execute_task(task)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Task {task_id} ({task.task_type}) failed: {e}")
            scheduler_service.update_task_status(task_id, TaskStatus.FAILED.value, error=str(e))
            errors.append({'task_id': task_id, 'error': str(e)})
        else:
            scheduler_service.update_task_status(task_id, TaskStatus.COMPLETED.value, result=result)
        tasks_processed += 1

    for settings in sync_settings_service.get_due_syncs(now):
        try:
            sync_settings_service.update_last_sync(settings.entity_type, settings.entity_id)
            syncs_processed += 1
        except Exception as e:
            db.session.rollback()
            logger.error(f"Sync of {settings.entity_type} {settings.entity_id} failed: {e}")
            errors.append({'sync_settings_id': settings.id, 'error': str(e)})

    logger.info(f"Scheduler pass: {tasks_processed} tasks, {syncs_processed} syncs, {len(errors)} errors")
    return {'tasks_processed': tasks_processed, 'syncs_processed': syncs_processed, 'errors': errors}


def scheduler_status():
    now = datetime.utcnow()
    return {
        'pending_tasks': len(scheduler_service.get_tasks(status=TaskStatus.PENDING.value, limit=None)),
        'due_tasks': len(scheduler_service.get_due_tasks(now)),
        'pending_pipeline_items': {
            pipeline_type.value: len(pipeline_manager.get_items(status=PipelineStatus.PENDING.value,
                                                                pipeline_type=pipeline_type.value))
            for pipeline_type in PipelineType
        },
        'enabled_syncs': len(sync_settings_service.get_all_sync_settings(enabled=True)),
    }
