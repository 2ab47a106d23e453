import logging
import uuid
import requests
from database import db
from models import Job
from utils import ConfigHelper, truncate_text

logger = logging.getLogger(__name__)

DEFAULT_POST_TEMPLATE = "{company} is hiring: {title} in {location}\n\n{description}\n\nApply now: {apply_url}"

PLATFORM_ENDPOINTS = {
    'linkedin': 'https://api.linkedin.com/v2/ugcPosts',
    'xing': 'https://api.xing.com/v1/users/me/status_message',
    'facebook': 'https://graph.facebook.com/v18.0/{page_id}/feed',
    'instagram': 'https://graph.facebook.com/v18.0/{page_id}/media',
    'twitter': 'https://api.twitter.com/2/tweets',
}


class PublishError(Exception):
    pass


def entity_fields(item):
    """Text fields of the entity behind a pipeline item"""
    params = item.content_params or {}
    fields = {
        'title': params.get('title', ''),
        'company': params.get('company', ''),
        'location': params.get('location', ''),
        'description': params.get('description', ''),
        'apply_url': params.get('apply_url', ''),
    }

    if item.entity_type == 'job':
        job = db.session.get(Job, int(item.entity_id)) if str(item.entity_id).isdigit() else None
        if job:
            fields['title'] = fields['title'] or job.title
            fields['company'] = fields['company'] or job.company or ''
            fields['location'] = fields['location'] or job.location or ''
            fields['description'] = fields['description'] or job.description or ''

    fields['description'] = truncate_text(fields['description'], 300)
    return fields


def render_content(item):
    """Post text for the item's template, params override entity fields"""
    fields = entity_fields(item)
    params = item.content_params or {}

    if item.content_template == 'movido_default':
        return {
            'title': fields['title'],
            'company': fields['company'],
            'location': fields['location'],
            'description': fields['description'],
            'apply_url': fields['apply_url'],
            'target_audience': item.target_audience,
        }

    template = params.get('post_template') or DEFAULT_POST_TEMPLATE
    try:
        return template.format(**fields)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        logger.warning(f"Invalid post template for item {item.id}: {e}")
        return DEFAULT_POST_TEMPLATE.format(**fields)


def _simulated_result(prefix):
    return {'post_id': f"{prefix}_{uuid.uuid4().hex[:12]}", 'simulated': True}


class MovidoPublisher:
    """Publishes job ads to Movido"""

    def __init__(self, config=None):
        self.config = config or ConfigHelper.get_movido_config()

    def is_configured(self):
        return bool(self.config.get('api_key'))

    def publish(self, item):
        payload = render_content(item)

        if not self.is_configured():
            logger.info(f"Movido credentials missing, simulating post of item {item.id}")
            return _simulated_result('movido')

        url = f"{self.config['api_url'].rstrip('/')}/jobs"
        headers = {
            'Authorization': f"Bearer {self.config['api_key']}",
            'Content-Type': 'application/json'
        }
        if self.config.get('client_id'):
            headers['X-Client-Id'] = self.config['client_id']

        response = requests.post(url, json=payload, headers=headers, timeout=self.config['timeout'])

        if response.status_code not in (200, 201):
            logger.error(f"Failed to publish item {item.id} to Movido: {response.text}")
            raise PublishError(f"Movido returned {response.status_code}")

        data = response.json() if response.content else {}
        logger.info(f"Published item {item.id} to Movido")
        return {'post_id': str(data.get('id', '')), 'url': data.get('url'), 'simulated': False}


class SocialMediaPublisher:
    """Publishes posts to the configured social networks"""

    def __init__(self, config=None):
        self.config = config or ConfigHelper.get_social_media_config()

    def _payload(self, platform, content, params):
        if platform == 'linkedin':
            return {
                'author': params.get('author_urn', 'urn:li:organization:0'),
                'lifecycleState': 'PUBLISHED',
                'specificContent': {
                    'com.linkedin.ugc.ShareContent': {
                        'shareCommentary': {'text': content},
                        'shareMediaCategory': 'NONE',
                    }
                },
                'visibility': {'com.linkedin.ugc.MemberNetworkVisibility': 'PUBLIC'},
            }
        if platform in ('facebook', 'instagram'):
            payload = {'message': content} if platform == 'facebook' else {'caption': content}
            if params.get('image_url'):
                payload['image_url'] = params['image_url']
            if params.get('apply_url'):
                payload['link'] = params['apply_url']
            return payload
        if platform == 'twitter':
            return {'text': truncate_text(content, 280)}
        return {'message': content}

    def publish(self, item):
        platform = item.platform or 'other'
        params = item.content_params or {}
        content = render_content(item)
        token = self.config.get(platform)

        if not token or platform not in PLATFORM_ENDPOINTS:
            logger.info(f"No credentials for {platform}, simulating post of item {item.id}")
            return _simulated_result(platform)

        url = PLATFORM_ENDPOINTS[platform].format(page_id=params.get('page_id', 'me'))
        headers = {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json'
        }

        response = requests.post(url, json=self._payload(platform, content, params), headers=headers,
                                 timeout=self.config['timeout'])

        if response.status_code not in (200, 201):
            logger.error(f"Failed to publish item {item.id} to {platform}: {response.text}")
            raise PublishError(f"{platform} returned {response.status_code}")

        data = response.json() if response.content else {}
        post_id = data.get('id') or (data.get('data') or {}).get('id', '')
        logger.info(f"Published item {item.id} to {platform}")
        return {'post_id': str(post_id), 'simulated': False}


movido_publisher = MovidoPublisher()
social_media_publisher = SocialMediaPublisher()
