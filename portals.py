import logging
import requests
from matching.matching_service import parse_salary_range
from utils import ConfigHelper

logger = logging.getLogger(__name__)


class PortalError(Exception):
    pass


class PortalAdapter:
    """Read access to an external job portal's search API.

    Responses are normalized to plain dicts:
    portal jobs carry portal_id, portal_job_id, title, company, location,
    description, required_skills, required_experience, salary_range
    ({min, max}), required_education, original_url and portal_name;
    portal candidates carry portal_id, portal_candidate_id, first_name,
    last_name, email, phone, location, skills, experience (years),
    education, salary_expectation, profile_url and portal_name.
    """
    portal_type = None
    default_base_url = None

    def __init__(self, portal):
        self.portal = portal
        self.base_url = (portal.base_url or self.default_base_url or '').rstrip('/')
        self.api_key = portal.api_key

    def is_configured(self):
        return bool(self.base_url and self.api_key)

    def _get(self, path, params=None):
        url = f"{self.base_url}{path}"
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json'
        }

        response = requests.get(url, params=params, headers=headers, timeout=ConfigHelper.get_http_timeout())
        if response.status_code != 200:
            raise PortalError(f"{self.portal.name} returned {response.status_code}: {response.text[:200]}")
        return response.json()

    @staticmethod
    def _items(data, key):
        if isinstance(data, list):
            return data
        return data.get(key) or data.get('results') or []

    def search_jobs(self, query=None):
        if not self.is_configured():
            logger.warning(f"Portal {self.portal.name} has no credentials, skipping job search")
            return []

        data = self._get('/jobs/search', {'q': query or ''})
        return [self.normalize_job(raw) for raw in self._items(data, 'jobs')]

    def search_candidates(self, query=None):
        if not self.is_configured():
            logger.warning(f"Portal {self.portal.name} has no credentials, skipping candidate search")
            return []

        data = self._get('/candidates/search', {'q': query or ''})
        return [self.normalize_candidate(raw) for raw in self._items(data, 'candidates')]

    def normalize_job(self, raw):
        salary = raw.get('salary_range') or raw.get('salary') or {}
        if not isinstance(salary, dict):
            # Some portals send '50000-60000' or a single figure
            salary = parse_salary_range(salary)
        return {
            'portal_id': str(self.portal.id),
            'portal_job_id': str(raw.get('id', '')),
            'title': raw.get('title', ''),
            'company': raw.get('company') or raw.get('company_name', ''),
            'location': raw.get('location', ''),
            'description': raw.get('description', ''),
            'required_skills': raw.get('required_skills') or raw.get('skills') or [],
            'required_experience': raw.get('required_experience') or raw.get('experience_years') or 0,
            'salary_range': {'min': salary.get('min'), 'max': salary.get('max')} if salary else None,
            'required_education': raw.get('required_education') or raw.get('education', ''),
            'original_url': raw.get('url') or raw.get('original_url', ''),
            'portal_name': self.portal.name,
        }

    def normalize_candidate(self, raw):
        return {
            'portal_id': str(self.portal.id),
            'portal_candidate_id': str(raw.get('id', '')),
            'first_name': raw.get('first_name', ''),
            'last_name': raw.get('last_name', ''),
            'email': raw.get('email', ''),
            'phone': raw.get('phone', ''),
            'location': raw.get('location', ''),
            'skills': raw.get('skills') or [],
            'experience': raw.get('experience') or raw.get('experience_years') or 0,
            'education': raw.get('education', ''),
            'salary_expectation': raw.get('salary_expectation'),
            'profile_url': raw.get('profile_url') or raw.get('url', ''),
            'portal_name': self.portal.name,
        }


class StepStoneAdapter(PortalAdapter):
    portal_type = 'stepstone'
    default_base_url = 'https://api.stepstone.com/v1'


class IndeedAdapter(PortalAdapter):
    portal_type = 'indeed'
    default_base_url = 'https://api.indeed.com/v2'


class LinkedInAdapter(PortalAdapter):
    portal_type = 'linkedin'
    default_base_url = 'https://api.linkedin.com/v2'

    def normalize_candidate(self, raw):
        candidate = super().normalize_candidate(raw)
        candidate['first_name'] = candidate['first_name'] or raw.get('firstName', '')
        candidate['last_name'] = candidate['last_name'] or raw.get('lastName', '')
        return candidate


class XingAdapter(PortalAdapter):
    portal_type = 'xing'
    default_base_url = 'https://api.xing.com/v1'

    def normalize_candidate(self, raw):
        candidate = super().normalize_candidate(raw)
        candidate['first_name'] = candidate['first_name'] or raw.get('firstName', '')
        candidate['last_name'] = candidate['last_name'] or raw.get('lastName', '')
        return candidate


ADAPTERS = {
    adapter.portal_type: adapter
    for adapter in (StepStoneAdapter, IndeedAdapter, LinkedInAdapter, XingAdapter)
}


def get_adapter(portal):
    adapter_class = ADAPTERS.get(portal.portal_type)
    if not adapter_class:
        logger.warning(f"No adapter for portal type {portal.portal_type}")
        return None
    return adapter_class(portal)
