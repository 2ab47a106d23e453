import json
import logging
import queue
import uuid
from datetime import datetime
from functools import wraps
from flask import Response, jsonify, request, stream_with_context
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash
from database import db
from editing_locks import editing_lock_service
from errors import LockConflictError, NotFoundError, RecruitingError, ValidationError
from matching import matching_service
from matching.customer_requirement_matcher import customer_requirement_matcher
from matching.portal_matching import portal_matching_service
from models import (Application, Candidate, CandidateStatus, CustomerRequirementMatch, Job, JobStatus,
                    Requirement, TalentPoolEntry, User)
from notifications import notification_service, realtime_notifier
from pipeline import pipeline_manager
from pipeline_executors import run_scheduler_pass, scheduler_status
from scheduler_service import scheduler_service
from sync_settings import sync_settings_service
from talent_pool import talent_pool_service
from utils import (ConfigHelper, parse_datetime, to_int, validate_lock_data,
                   validate_pipeline_item_data, validate_task_data)

logger = logging.getLogger(__name__)


def json_endpoint(func):
    """Map service errors to JSON responses, roll back on unexpected failures"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RecruitingError as e:
            db.session.rollback()
            body = {'success': False, 'error': str(e)}
            if isinstance(e, LockConflictError):
                body['lock'] = e.lock.to_dict()
            return jsonify(body), e.status_code
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error in {func.__name__}: {e}")
            return jsonify({
                'success': False,
                'error': str(e)
            }), 500
    return wrapper


def request_data():
    return request.get_json(silent=True) or {}


def current_user_id(data=None):
    """User id from the payload or query string, falling back to the logged-in user"""
    user_id = (data or {}).get('user_id') or request.args.get('user_id')
    if not user_id and current_user.is_authenticated:
        user_id = current_user.id
    return str(user_id) if user_id else None


def register_routes(app):
    register_auth_routes(app)
    register_lock_routes(app)
    register_matching_routes(app)
    register_talent_pool_routes(app)
    register_portal_routes(app)
    register_scheduler_routes(app)
    register_pipeline_routes(app)
    register_sync_routes(app)
    register_notification_routes(app)


def register_auth_routes(app):
    @app.route('/api/login', methods=['POST'])
    @json_endpoint
    def api_login():
        data = request_data()
        user = User.query.filter_by(username=data.get('username', '')).first()

        if user and check_password_hash(user.password_hash, data.get('password', '')):
            login_user(user)
            return jsonify({'success': True, 'user': user.to_dict()})

        return jsonify({'success': False, 'error': 'Invalid username or password'}), 401

    @app.route('/api/logout', methods=['POST'])
    @login_required
    def api_logout():
        logout_user()
        return jsonify({'success': True})

    @app.route('/api/stats')
    @login_required
    @json_endpoint
    def api_stats():
        """API endpoint to get recruitment statistics"""
        return jsonify({
            'success': True,
            'stats': {
                'total_jobs': Job.query.filter_by(status=JobStatus.ACTIVE).count(),
                'total_candidates': Candidate.query.count(),
                'new_candidates': Candidate.query.filter_by(status=CandidateStatus.NEW).count(),
                'total_applications': Application.query.count(),
                'talent_pool_entries': TalentPoolEntry.query.filter_by(status='active').count(),
                'open_requirements': Requirement.query.filter_by(status='open').count(),
                'high_matches': CustomerRequirementMatch.query.filter(
                    CustomerRequirementMatch.match_score >= 80).count(),
            }
        })

    @app.route('/api/test', methods=['GET'])
    def api_test():
        """Simple test endpoint to verify API is working"""
        return jsonify({
            'success': True,
            'message': 'API is working correctly',
            'timestamp': datetime.now().isoformat()
        })


def register_lock_routes(app):
    @app.route('/api/editing-locks', methods=['GET'])
    @json_endpoint
    def api_get_locks():
        entity_id = request.args.get('entity_id')
        entity_type = request.args.get('entity_type')
        user_id = current_user_id()

        if entity_id and entity_type:
            lock = editing_lock_service.get_active_lock(entity_id, entity_type)
            can_edit = lock is None or (user_id is not None and lock.user_id == user_id)
            return jsonify({
                'success': True,
                'lock': lock.to_dict() if lock else None,
                'can_edit': can_edit
            })

        if user_id:
            locks = editing_lock_service.get_user_active_locks(user_id)
            return jsonify({'success': True, 'locks': [lock.to_dict() for lock in locks]})

        return jsonify({'success': False, 'error': 'entity_id and entity_type or user_id required'}), 400

    @app.route('/api/editing-locks', methods=['POST'])
    @json_endpoint
    def api_create_lock():
        data = dict(request_data())
        data['user_id'] = current_user_id(data)
        if not data.get('user_name') and current_user.is_authenticated:
            data['user_name'] = current_user.username

        errors = validate_lock_data(data)
        if errors:
            return jsonify({'success': False, 'error': '; '.join(errors)}), 400

        lock = editing_lock_service.create_lock(
            data['entity_id'], data['entity_type'], data['user_id'], data['user_name'],
            to_int(data.get('duration_minutes'))
        )
        if lock.user_id != data['user_id']:
            raise LockConflictError(lock)

        return jsonify({'success': True, 'lock': lock.to_dict()}), 201

    @app.route('/api/editing-locks', methods=['DELETE'])
    @json_endpoint
    def api_release_lock():
        data = request_data()
        user_id = current_user_id(data)
        lock_id = data.get('id') or request.args.get('id')
        entity_id = data.get('entity_id') or request.args.get('entity_id')
        entity_type = data.get('entity_type') or request.args.get('entity_type')

        if not user_id:
            return jsonify({'success': False, 'error': 'user_id is required'}), 400

        if lock_id:
            released = editing_lock_service.release_lock(to_int(lock_id), user_id)
        elif entity_id and entity_type:
            released = editing_lock_service.release_entity_lock(entity_id, entity_type, user_id)
        else:
            return jsonify({'success': False, 'error': 'id or entity_id and entity_type required'}), 400

        if not released:
            return jsonify({'success': False, 'error': 'No active lock owned by this user'}), 404
        return jsonify({'success': True})

    @app.route('/api/editing-locks', methods=['PATCH'])
    @json_endpoint
    def api_extend_lock():
        data = request_data()
        lock_id = to_int(data.get('id'))
        if not lock_id:
            return jsonify({'success': False, 'error': 'id is required'}), 400

        lock = editing_lock_service.extend_lock(lock_id, to_int(data.get('duration_minutes')))
        if not lock:
            return jsonify({'success': False, 'error': 'Lock not found or no longer active'}), 404
        return jsonify({'success': True, 'lock': lock.to_dict()})


def register_matching_routes(app):
    @app.route('/api/applications/<int:application_id>/calculate-match', methods=['POST'])
    @json_endpoint
    def api_calculate_application_match(application_id):
        application = db.session.get(Application, application_id)
        if not application:
            raise NotFoundError(f"Application {application_id} not found")

        job = db.session.get(Job, application.job_id) if application.job_id else None
        if not job:
            raise NotFoundError(f"Job for application {application_id} not found")

        data = request_data()
        candidate = {**application.to_dict(), 'location': application.applicant_location}
        match = matching_service.calculate_match(job.to_dict(), candidate, data.get('weights'),
                                                 data.get('options'))

        application.match_score = match['score']
        application.match_data = match
        db.session.commit()

        return jsonify({'success': True, 'match': match})

    @app.route('/api/requirements/<int:requirement_id>/matches', methods=['POST'])
    @json_endpoint
    def api_match_requirement(requirement_id):
        data = request_data()
        matches = customer_requirement_matcher.calculate_matches_for_requirement(
            requirement_id, data.get('notify', True), data.get('min_score'))
        return jsonify({
            'success': True,
            'matches': [m.to_dict() for m in matches],
            'count': len(matches)
        })

    @app.route('/api/requirement-matches', methods=['GET'])
    @json_endpoint
    def api_requirement_matches():
        min_score = request.args.get('min_score')
        matches = customer_requirement_matcher.get_matches(
            requirement_id=to_int(request.args.get('requirement_id')),
            entity_type=request.args.get('entity_type'),
            entity_id=to_int(request.args.get('entity_id')),
            min_score=float(min_score) if min_score else None,
            status=request.args.get('status'),
            limit=to_int(request.args.get('limit'), 50),
            offset=to_int(request.args.get('offset'), 0)
        )
        return jsonify({'success': True, 'matches': [m.to_dict() for m in matches], 'count': len(matches)})

    @app.route('/api/requirement-matches/<int:match_id>', methods=['PATCH'])
    @json_endpoint
    def api_update_requirement_match(match_id):
        data = request_data()
        if not data.get('status'):
            raise ValidationError("status is required")

        match = customer_requirement_matcher.update_match_status(match_id, data['status'], data.get('notes'))
        return jsonify({'success': True, 'match': match.to_dict()})


def register_talent_pool_routes(app):
    @app.route('/api/talent-pool', methods=['GET'])
    @json_endpoint
    def api_talent_pool():
        statuses = request.args.getlist('status')
        tags = request.args.getlist('tag')
        result = talent_pool_service.get_entries(
            entity_type=request.args.get('entity_type'),
            statuses=statuses or None,
            min_rating=to_int(request.args.get('min_rating')),
            tags=tags or None,
            limit=to_int(request.args.get('limit'), 20),
            offset=to_int(request.args.get('offset'), 0)
        )
        return jsonify({
            'success': True,
            'entries': [e.to_dict() for e in result['entries']],
            'total': result['total']
        })

    @app.route('/api/talent-pool', methods=['POST'])
    @json_endpoint
    def api_add_to_talent_pool():
        data = request_data()
        if not data.get('entity_id') or not data.get('entity_type'):
            raise ValidationError("entity_id and entity_type are required")

        entry = talent_pool_service.add_to_talent_pool(
            to_int(data['entity_id']), data['entity_type'],
            added_by=current_user.id if current_user.is_authenticated else None,
            reason=data.get('reason'),
            notes=data.get('notes'),
            rating=to_int(data.get('rating')),
            tags=data.get('tags'),
            reminder_date=data.get('reminder_date')
        )
        return jsonify({'success': True, 'entry': entry.to_dict()}), 201

    @app.route('/api/talent-pool/<int:entry_id>', methods=['GET'])
    @json_endpoint
    def api_talent_pool_entry(entry_id):
        entry = talent_pool_service.get_entry(entry_id)
        return jsonify({
            'success': True,
            'entry': entry.to_dict(),
            'notes': [n.to_dict() for n in talent_pool_service.get_notes(entry_id)],
            'activities': [a.to_dict() for a in talent_pool_service.get_activities(entry_id)]
        })

    @app.route('/api/talent-pool/<int:entry_id>', methods=['PATCH'])
    @json_endpoint
    def api_update_talent_pool_entry(entry_id):
        data = request_data()
        updated_by = current_user.id if current_user.is_authenticated else None
        data.pop('updated_by', None)
        entry = talent_pool_service.update_entry(entry_id, updated_by=updated_by, **data)
        return jsonify({'success': True, 'entry': entry.to_dict()})

    @app.route('/api/talent-pool/<int:entry_id>', methods=['DELETE'])
    @json_endpoint
    def api_remove_from_talent_pool(entry_id):
        talent_pool_service.remove_from_talent_pool(entry_id)
        return jsonify({'success': True})

    @app.route('/api/talent-pool/<int:entry_id>/notes', methods=['POST'])
    @json_endpoint
    def api_add_talent_pool_note(entry_id):
        data = request_data()
        note = talent_pool_service.add_note(
            entry_id, data.get('content'),
            created_by=current_user.id if current_user.is_authenticated else None,
            note_type=data.get('note_type', 'general')
        )
        return jsonify({'success': True, 'note': note.to_dict()}), 201

    @app.route('/api/talent-pool/<int:entry_id>/job-matches', methods=['POST'])
    @json_endpoint
    def api_calculate_talent_pool_matches(entry_id):
        matches = talent_pool_service.calculate_job_matches(entry_id)
        return jsonify({'success': True, 'matches': [m.to_dict() for m in matches], 'count': len(matches)})

    @app.route('/api/talent-pool/<int:entry_id>/job-matches', methods=['GET'])
    @json_endpoint
    def api_talent_pool_matches(entry_id):
        matches = talent_pool_service.get_job_matches(entry_id)
        return jsonify({'success': True, 'matches': [m.to_dict() for m in matches], 'count': len(matches)})


def register_portal_routes(app):
    @app.route('/api/portal-matching/candidates', methods=['POST'])
    @json_endpoint
    def api_portal_match_candidates():
        """Match one job against internal and portal candidates"""
        data = request_data()
        job = data.get('job')
        if not job and data.get('job_id'):
            record = db.session.get(Job, to_int(data['job_id']))
            if not record:
                raise NotFoundError(f"Job {data['job_id']} not found")
            job = record.to_dict()
        if not job:
            raise ValidationError("job or job_id is required")

        internal = [c.to_dict() for c in Candidate.query.filter(Candidate.status == CandidateStatus.ACTIVE).all()]
        portal_candidates = []
        if data.get('include_portals', True):
            portal_candidates = portal_matching_service.fetch_portal_candidates(data.get('portal_ids'),
                                                                                data.get('query'))

        matches = portal_matching_service.match_with_all_candidates(job, internal, portal_candidates,
                                                                    data.get('options'))
        return jsonify({'success': True, 'matches': matches, 'count': len(matches)})

    @app.route('/api/portal-matching/jobs', methods=['POST'])
    @json_endpoint
    def api_portal_match_jobs():
        """Match one candidate against internal and portal jobs"""
        data = request_data()
        candidate = data.get('candidate')
        if not candidate and data.get('candidate_id'):
            record = db.session.get(Candidate, to_int(data['candidate_id']))
            if not record:
                raise NotFoundError(f"Candidate {data['candidate_id']} not found")
            candidate = record.to_dict()
        if not candidate:
            raise ValidationError("candidate or candidate_id is required")

        internal = [j.to_dict() for j in Job.query.filter(Job.status == JobStatus.ACTIVE).all()]
        portal_jobs = []
        if data.get('include_portals', True):
            portal_jobs = portal_matching_service.fetch_portal_jobs(data.get('portal_ids'), data.get('query'))

        matches = portal_matching_service.match_with_all_jobs(candidate, internal, portal_jobs,
                                                              data.get('options'))
        return jsonify({'success': True, 'matches': matches, 'count': len(matches)})


def register_scheduler_routes(app):
    @app.route('/api/scheduler/init', methods=['GET'])
    @json_endpoint
    def api_scheduler_status():
        from scheduler import is_running
        return jsonify({'success': True, 'status': scheduler_status(), 'background_running': is_running()})

    @app.route('/api/scheduler/init', methods=['POST'])
    @json_endpoint
    def api_scheduler_run():
        result = run_scheduler_pass()
        return jsonify({'success': True, **result})

    @app.route('/api/scheduler/tasks', methods=['GET'])
    @json_endpoint
    def api_scheduler_tasks():
        tasks = scheduler_service.get_tasks(
            status=request.args.get('status'),
            task_type=request.args.get('task_type'),
            entity_id=request.args.get('entity_id'),
            entity_type=request.args.get('entity_type'),
            limit=to_int(request.args.get('limit'), 100),
            offset=to_int(request.args.get('offset'), 0)
        )
        return jsonify({'success': True, 'tasks': [t.to_dict() for t in tasks], 'count': len(tasks)})

    @app.route('/api/scheduler/tasks', methods=['POST'])
    @json_endpoint
    def api_create_task():
        data = request_data()
        errors = validate_task_data(data)
        if errors:
            return jsonify({'success': False, 'error': '; '.join(errors)}), 400

        task = scheduler_service.create_task(
            data['task_type'],
            parse_datetime(data['scheduled_for']),
            interval_type=data.get('interval_type', 'once'),
            interval_value=to_int(data.get('interval_value')),
            custom_schedule=data.get('custom_schedule'),
            config=data.get('config'),
            entity_id=data.get('entity_id'),
            entity_type=data.get('entity_type'),
            created_by=current_user.id if current_user.is_authenticated else None
        )
        return jsonify({'success': True, 'task': task.to_dict()}), 201

    @app.route('/api/scheduler/tasks/<int:task_id>', methods=['GET'])
    @json_endpoint
    def api_scheduler_task(task_id):
        task = scheduler_service.get_task_by_id(task_id)
        if not task:
            raise NotFoundError(f"Task {task_id} not found")
        return jsonify({'success': True, 'task': task.to_dict()})

    @app.route('/api/scheduler/tasks/<int:task_id>', methods=['PATCH'])
    @json_endpoint
    def api_update_task(task_id):
        data = dict(request_data())
        status = data.pop('status', None)
        if status:
            scheduler_service.check_transition(task_id, status)

        task = scheduler_service.update_task(task_id, **data)
        if status:
            task = scheduler_service.update_task_status(task_id, status, data.get('result'), data.get('error'))
        return jsonify({'success': True, 'task': task.to_dict()})

    @app.route('/api/scheduler/tasks/<int:task_id>', methods=['DELETE'])
    @json_endpoint
    def api_delete_task(task_id):
        if not scheduler_service.delete_task(task_id):
            raise NotFoundError(f"Task {task_id} not found")
        return jsonify({'success': True})

    @app.route('/api/scheduler/tasks/<int:task_id>/logs', methods=['GET'])
    @json_endpoint
    def api_task_logs(task_id):
        logs = scheduler_service.get_task_logs(task_id, to_int(request.args.get('limit'), 10))
        return jsonify({'success': True, 'logs': [log.to_dict() for log in logs]})


def register_pipeline_routes(app):
    @app.route('/api/pipeline/items', methods=['GET'])
    @json_endpoint
    def api_pipeline_items():
        items = pipeline_manager.get_items(
            status=request.args.getlist('status') or None,
            pipeline_type=request.args.get('pipeline_type'),
            platform=request.args.get('platform'),
            entity_type=request.args.get('entity_type'),
            entity_id=request.args.get('entity_id'),
            limit=to_int(request.args.get('limit'), 50),
            offset=to_int(request.args.get('offset'), 0)
        )
        return jsonify({'success': True, 'items': [i.to_dict() for i in items], 'count': len(items)})

    @app.route('/api/pipeline/items', methods=['POST'])
    @json_endpoint
    def api_add_pipeline_item():
        data = request_data()
        errors = validate_pipeline_item_data(data)
        if errors:
            return jsonify({'success': False, 'error': '; '.join(errors)}), 400

        item = pipeline_manager.add_to_pipeline(
            data['pipeline_type'], data['entity_id'], data['entity_type'],
            platform=data.get('platform'),
            priority=to_int(data.get('priority'), 0),
            scheduled_for=parse_datetime(data.get('scheduled_for')),
            content_template=data.get('content_template') or (
                'movido_default' if data['pipeline_type'] == 'movido' else 'default'),
            content_params=data.get('content_params'),
            target_audience=data.get('target_audience')
        )
        return jsonify({'success': True, 'item': item.to_dict()}), 201

    @app.route('/api/pipeline/items/<int:item_id>', methods=['PATCH'])
    @json_endpoint
    def api_update_pipeline_item(item_id):
        data = request_data()
        if not data.get('status'):
            raise ValidationError("status is required")

        item = pipeline_manager.update_item_status(item_id, data['status'], data.get('result'), data.get('error'))
        return jsonify({'success': True, 'item': item.to_dict()})

    @app.route('/api/pipeline/items/<int:item_id>', methods=['DELETE'])
    @json_endpoint
    def api_remove_pipeline_item(item_id):
        if not pipeline_manager.remove_from_pipeline(item_id):
            raise NotFoundError(f"Pipeline item {item_id} not found")
        return jsonify({'success': True})

    @app.route('/api/pipeline/settings', methods=['GET'])
    @json_endpoint
    def api_pipeline_settings():
        settings = pipeline_manager.get_all_pipeline_settings(request.args.get('pipeline_type'))
        return jsonify({'success': True, 'settings': [s.to_dict() for s in settings]})

    @app.route('/api/pipeline/settings', methods=['PUT', 'POST'])
    @json_endpoint
    def api_save_pipeline_settings():
        data = dict(request_data())
        pipeline_type = data.pop('pipeline_type', None)
        platform = data.pop('platform', None)
        settings = pipeline_manager.save_pipeline_settings(pipeline_type, platform, **data)
        return jsonify({'success': True, 'settings': settings.to_dict()})

    @app.route('/api/pipeline/schedule', methods=['POST'])
    @json_endpoint
    def api_schedule_pipeline():
        data = request_data()

        if data.get('item_id'):
            when = parse_datetime(data.get('scheduled_for')) or datetime.utcnow()
            task = pipeline_manager.schedule_item_posting(to_int(data['item_id']), when)
            return jsonify({'success': True, 'task': task.to_dict()})

        if not data.get('pipeline_type'):
            raise ValidationError("pipeline_type or item_id is required")

        count = pipeline_manager.schedule_pipeline_posts(data['pipeline_type'], data.get('platform'),
                                                         to_int(data.get('max_items'), 10))
        return jsonify({'success': True, 'scheduled': count})


def register_sync_routes(app):
    @app.route('/api/sync-settings', methods=['GET'])
    @json_endpoint
    def api_sync_settings():
        entity_type = request.args.get('entity_type')
        entity_id = request.args.get('entity_id')

        if entity_type and entity_id:
            settings = sync_settings_service.get_sync_settings(entity_type, entity_id)
            if not settings:
                raise NotFoundError(f"No sync settings for {entity_type} {entity_id}")
            return jsonify({'success': True, 'settings': settings.to_dict()})

        enabled = request.args.get('enabled')
        settings = sync_settings_service.get_all_sync_settings(
            entity_type, None if enabled is None else enabled.lower() == 'true')
        return jsonify({'success': True, 'settings': [s.to_dict() for s in settings]})

    @app.route('/api/sync-settings', methods=['PUT', 'POST'])
    @json_endpoint
    def api_save_sync_settings():
        data = dict(request_data())
        entity_type = data.pop('entity_type', None)
        entity_id = data.pop('entity_id', None)
        if not entity_type or entity_id is None:
            raise ValidationError("entity_type and entity_id are required")

        if data.pop('trigger', False):
            task = sync_settings_service.trigger_sync(entity_type, entity_id, data.get('config'))
            if not task:
                raise NotFoundError(f"No sync settings for {entity_type} {entity_id}")
            return jsonify({'success': True, 'task': task.to_dict()})

        settings = sync_settings_service.save_sync_settings(entity_type, entity_id, **data)
        return jsonify({'success': True, 'settings': settings.to_dict()})

    @app.route('/api/sync-settings', methods=['DELETE'])
    @json_endpoint
    def api_delete_sync_settings():
        data = request_data()
        entity_type = data.get('entity_type') or request.args.get('entity_type')
        entity_id = data.get('entity_id') or request.args.get('entity_id')

        if not sync_settings_service.delete_sync_settings(entity_type, entity_id):
            raise NotFoundError(f"No sync settings for {entity_type} {entity_id}")
        return jsonify({'success': True})


def register_notification_routes(app):
    @app.route('/api/notifications', methods=['GET'])
    @login_required
    @json_endpoint
    def api_notifications():
        notifications = notification_service.get_notifications(
            current_user.id,
            unread_only=request.args.get('unread_only', 'false').lower() == 'true',
            entity_type=request.args.get('entity_type'),
            entity_id=request.args.get('entity_id'),
            limit=to_int(request.args.get('limit'), 50),
            offset=to_int(request.args.get('offset'), 0)
        )
        return jsonify({
            'success': True,
            'notifications': [n.to_dict() for n in notifications],
            'unread_count': notification_service.count_unread(current_user.id)
        })

    @app.route('/api/notifications/stream', methods=['GET'])
    @login_required
    def api_notification_stream():
        """Server-Sent Events feed of new notifications for the logged-in user"""
        user_id = current_user.id
        client_id = uuid.uuid4().hex
        heartbeat = ConfigHelper.get_realtime_config()['heartbeat_seconds']
        events = queue.Queue()
        realtime_notifier.register_client(user_id, client_id, events.put)

        def generate_events():
            try:
                yield f"event: connected\ndata: {json.dumps({'client_id': client_id})}\n\n"
                while True:
                    try:
                        payload = events.get(timeout=heartbeat)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
                        continue
                    yield f"event: {payload.get('type', 'message')}\ndata: {json.dumps(payload)}\n\n"
            finally:
                realtime_notifier.unregister_client(user_id, client_id)
                logger.debug(f"Realtime client {client_id} of user {user_id} disconnected")

        response = Response(
            stream_with_context(generate_events()),
            mimetype='text/event-stream',
            headers={
                'Cache-Control': 'no-cache',
                'X-Accel-Buffering': 'no',
            }
        )
        # A client that disconnects before the first read never starts the generator
        response.call_on_close(lambda: realtime_notifier.unregister_client(user_id, client_id))
        return response

    @app.route('/api/notifications/count', methods=['GET'])
    @login_required
    @json_endpoint
    def api_notification_count():
        return jsonify({'success': True, 'unread_count': notification_service.count_unread(current_user.id)})

    @app.route('/api/notifications/<int:notification_id>/read', methods=['POST'])
    @login_required
    @json_endpoint
    def api_mark_notification_read(notification_id):
        if not notification_service.mark_as_read(notification_id, current_user.id):
            raise NotFoundError(f"Notification {notification_id} not found")
        return jsonify({'success': True})

    @app.route('/api/notifications/read-all', methods=['POST'])
    @login_required
    @json_endpoint
    def api_mark_all_notifications_read():
        count = notification_service.mark_all_as_read(current_user.id)
        return jsonify({'success': True, 'updated': count})

    @app.route('/api/notifications/<int:notification_id>', methods=['DELETE'])
    @login_required
    @json_endpoint
    def api_delete_notification(notification_id):
        if not notification_service.delete_notification(notification_id, current_user.id):
            raise NotFoundError(f"Notification {notification_id} not found")
        return jsonify({'success': True})

    @app.route('/api/notifications/settings', methods=['GET'])
    @login_required
    @json_endpoint
    def api_notification_settings():
        settings = notification_service.get_settings(current_user.id)
        return jsonify({'success': True, 'settings': settings.to_dict()})

    @app.route('/api/notifications/settings', methods=['PATCH'])
    @login_required
    @json_endpoint
    def api_update_notification_settings():
        settings = notification_service.update_settings(current_user.id, **request_data())
        return jsonify({'success': True, 'settings': settings.to_dict()})
