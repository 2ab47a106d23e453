import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Dict, Optional

logger = logging.getLogger(__name__)

def parse_json_field(value: Any, default: Any = None) -> Any:
    """Decode a JSON column that may hold a serialized string"""
    if value is None or value == '':
        return default

    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value

    return value

def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp coming from a request body"""
    if not value:
        return None

    if isinstance(value, datetime):
        return value

    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed

def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == '':
        return default

    try:
        return int(value)
    except (TypeError, ValueError):
        return default

def round_half_up(value: float) -> int:
    """Round like a spreadsheet does, 0.5 always goes up"""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)

def truncate_text(text: str, max_length: int = 200) -> str:
    """Truncate text to specified length with ellipsis"""
    if not text or len(text) <= max_length:
        return text

    return text[:max_length - 3] + "..."

def log_processing_time(func):
    """Decorator to log function processing time"""
    def wrapper(*args, **kwargs):
        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
            end_time = datetime.now()
            processing_time = (end_time - start_time).total_seconds()

            logger.info(f"{func.__name__} completed in {processing_time:.2f} seconds")
            return result

        except Exception as e:
            end_time = datetime.now()
            processing_time = (end_time - start_time).total_seconds()

            logger.error(f"{func.__name__} failed after {processing_time:.2f} seconds: {e}")
            raise

    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper

class ConfigHelper:
    """Helper class for configuration management"""

    @staticmethod
    def get_lock_config():
        """Get editing lock configuration from environment"""
        return {
            'duration_minutes': int(os.getenv('EDITING_LOCK_DURATION_MINUTES', '15')),
        }

    @staticmethod
    def get_matching_config():
        """Get matching thresholds from environment"""
        return {
            'notification_threshold': float(os.getenv('MATCH_NOTIFICATION_THRESHOLD', '75')),
            'cleanup_days': int(os.getenv('MATCH_CLEANUP_DAYS', '30')),
        }

    @staticmethod
    def get_scheduler_config():
        """Get background scheduler configuration from environment"""
        return {
            'enabled': os.getenv('SCHEDULER_ENABLED', 'true').lower() == 'true',
            'poll_seconds': int(os.getenv('SCHEDULER_POLL_SECONDS', '60')),
            'log_retention_days': int(os.getenv('SCHEDULER_LOG_RETENTION_DAYS', '30')),
        }

    @staticmethod
    def get_movido_config():
        """Get Movido configuration from environment"""
        return {
            'api_url': os.getenv('MOVIDO_API_URL', 'https://api.movido.com/v1'),
            'api_key': os.getenv('MOVIDO_API_KEY', ''),
            'client_id': os.getenv('MOVIDO_CLIENT_ID', ''),
            'timeout': int(os.getenv('HTTP_TIMEOUT_SECONDS', '15')),
        }

    @staticmethod
    def get_social_media_config():
        """Get social media access tokens from environment"""
        return {
            'linkedin': os.getenv('LINKEDIN_ACCESS_TOKEN', ''),
            'xing': os.getenv('XING_ACCESS_TOKEN', ''),
            'facebook': os.getenv('FACEBOOK_ACCESS_TOKEN', ''),
            'instagram': os.getenv('INSTAGRAM_ACCESS_TOKEN', ''),
            'twitter': os.getenv('TWITTER_BEARER_TOKEN', ''),
            'timeout': int(os.getenv('HTTP_TIMEOUT_SECONDS', '15')),
        }

    @staticmethod
    def get_realtime_config():
        """Get notification stream configuration from environment"""
        return {
            'heartbeat_seconds': int(os.getenv('NOTIFICATION_STREAM_HEARTBEAT_SECONDS', '30')),
        }

    @staticmethod
    def get_http_timeout() -> int:
        return int(os.getenv('HTTP_TIMEOUT_SECONDS', '15'))

# Validation helpers
def validate_lock_data(data: Dict) -> List[str]:
    """Validate editing lock request and return list of errors"""
    errors = []

    for field in ('entity_id', 'entity_type', 'user_id', 'user_name'):
        if not data.get(field):
            errors.append(f"{field} is required")

    duration = data.get('duration_minutes')
    if duration is not None and (to_int(duration) is None or to_int(duration) <= 0):
        errors.append("duration_minutes must be a positive number")

    return errors

def validate_task_data(data: Dict) -> List[str]:
    """Validate scheduled task data and return list of errors"""
    from scheduler_service import TaskType, IntervalType

    errors = []

    task_type = data.get('task_type')
    if not task_type:
        errors.append("task_type is required")
    elif task_type not in [t.value for t in TaskType]:
        errors.append(f"Unknown task_type '{task_type}'")

    if not data.get('scheduled_for'):
        errors.append("scheduled_for is required")
    else:
        try:
            parse_datetime(data['scheduled_for'])
        except ValueError:
            errors.append("scheduled_for must be an ISO timestamp")

    interval_type = data.get('interval_type')
    if interval_type and interval_type not in [i.value for i in IntervalType]:
        errors.append(f"Unknown interval_type '{interval_type}'")

    return errors

def validate_pipeline_item_data(data: Dict) -> List[str]:
    """Validate pipeline item data and return list of errors"""
    from pipeline import PipelineType, Platform

    errors = []

    pipeline_type = data.get('pipeline_type')
    if pipeline_type not in [p.value for p in PipelineType]:
        errors.append("pipeline_type must be 'social_media' or 'movido'")

    platform = data.get('platform')
    if platform and platform not in [p.value for p in Platform]:
        errors.append(f"Unknown platform '{platform}'")

    if not data.get('entity_id'):
        errors.append("entity_id is required")

    if not data.get('entity_type'):
        errors.append("entity_type is required")

    return errors
