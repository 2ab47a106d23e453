import logging
from matching.matching_service import MatchingService, DEFAULT_OPTIONS
from models import JobPortal
from portals import get_adapter

logger = logging.getLogger(__name__)

INTERNAL_COMPANY_NAME = 'Own company'


def portal_job_to_job(portal_job):
    """Internal job shape for a portal listing"""
    salary = portal_job.get('salary_range') or {}
    salary_range = ''
    if salary.get('min') and salary.get('max'):
        salary_range = f"{salary['min']}-{salary['max']}"

    requirement_parts = list(portal_job.get('required_skills') or [])
    if portal_job.get('required_experience'):
        requirement_parts.append(f"{portal_job['required_experience']} years experience")
    if portal_job.get('required_education'):
        requirement_parts.append(portal_job['required_education'])

    return {
        'id': f"{portal_job['portal_id']}-{portal_job['portal_job_id']}",
        'title': portal_job.get('title', ''),
        'company': portal_job.get('company', ''),
        'location': portal_job.get('location', ''),
        'description': portal_job.get('description', ''),
        'requirements': ', '.join(str(p) for p in requirement_parts),
        'required_skills': portal_job.get('required_skills') or [],
        'salary_range': salary_range,
    }


def portal_candidate_to_candidate(portal_candidate):
    name = f"{portal_candidate.get('first_name', '')} {portal_candidate.get('last_name', '')}".strip()
    return {
        'id': f"{portal_candidate['portal_id']}-{portal_candidate['portal_candidate_id']}",
        'name': name,
        'position': portal_candidate.get('education') or 'Unknown',
        'location': portal_candidate.get('location', ''),
        'skills': [{'name': skill, 'level': 1} for skill in portal_candidate.get('skills') or []],
        'experience': [{'position': 'Experience', 'period': f"{portal_candidate.get('experience') or 0} years"}],
        'education': portal_candidate.get('education', ''),
        'salary_expectation': portal_candidate.get('salary_expectation'),
    }


def _is_portal_record(record, key):
    return 'portal_id' in record and key in record


class PortalMatchingService:
    """Matches jobs and candidates across the internal database and
    connected job portals."""

    def __init__(self, matcher=None, adapter_factory=None):
        self.matcher = matcher or MatchingService()
        self.adapter_factory = adapter_factory or get_adapter

    def _portals(self, portal_ids=None, active_only=True):
        query = JobPortal.query
        if active_only:
            query = query.filter(JobPortal.is_active.is_(True))
        if portal_ids:
            query = query.filter(JobPortal.id.in_(portal_ids))
        return query.all()

    def _collect(self, portals, method, query=None):
        results = []
        for portal in portals:
            adapter = self.adapter_factory(portal)
            if adapter is None:
                continue
            try:
                results.extend(getattr(adapter, method)(query))
            except Exception as e:
                logger.error(f"Error fetching from portal {portal.name}: {e}")
        return results

    def fetch_portal_jobs(self, portal_ids=None, query=None):
        return self._collect(self._portals(portal_ids), 'search_jobs', query)

    def fetch_portal_candidates(self, portal_ids=None, query=None):
        return self._collect(self._portals(portal_ids), 'search_candidates', query)

    def fetch_external_jobs(self, query=None):
        """Jobs from every configured portal, active or not"""
        return self._collect(self._portals(active_only=False), 'search_jobs', query)

    def match_with_all_candidates(self, job, internal_candidates, portal_candidates=None, options=None):
        options = {**DEFAULT_OPTIONS, **(options or {})}
        job_data = portal_job_to_job(job) if _is_portal_record(job, 'portal_job_id') else job
        matches = []

        for candidate in internal_candidates:
            match = self.matcher.calculate_match(job_data, candidate, options.get('weights'), options)
            if match['score'] >= options['minimum_score']:
                matches.append({
                    **match,
                    'candidate_id': candidate.get('id'),
                    'candidate_name': candidate.get('name'),
                    'is_portal_candidate': False,
                    'candidate_source': 'internal',
                })

        for portal_candidate in portal_candidates or []:
            candidate = portal_candidate_to_candidate(portal_candidate)
            match = self.matcher.calculate_match(job_data, candidate, options.get('weights'), options)
            if match['score'] >= options['minimum_score']:
                matches.append({
                    **match,
                    'candidate_id': candidate['id'],
                    'candidate_name': candidate['name'],
                    'is_portal_candidate': True,
                    'candidate_source': 'portal',
                    'portal_name': portal_candidate.get('portal_name'),
                    'profile_url': portal_candidate.get('profile_url'),
                })

        return sorted(matches, key=lambda m: m['score'], reverse=True)

    def match_with_all_jobs(self, candidate, internal_jobs, portal_jobs=None, options=None):
        options = {**DEFAULT_OPTIONS, **(options or {})}
        if _is_portal_record(candidate, 'portal_candidate_id'):
            candidate = portal_candidate_to_candidate(candidate)
        matches = []

        for job in internal_jobs:
            match = self.matcher.calculate_match(job, candidate, options.get('weights'), options)
            if match['score'] >= options['minimum_score']:
                matches.append({
                    **match,
                    'job_id': job.get('id'),
                    'job_title': job.get('title'),
                    'company_name': job.get('company') or INTERNAL_COMPANY_NAME,
                    'is_portal_job': False,
                    'job_source': 'internal',
                })

        for portal_job in portal_jobs or []:
            job = portal_job_to_job(portal_job)
            match = self.matcher.calculate_match(job, candidate, options.get('weights'), options)
            if match['score'] >= options['minimum_score']:
                matches.append({
                    **match,
                    'job_id': job['id'],
                    'job_title': job['title'],
                    'company_name': portal_job.get('company'),
                    'is_portal_job': True,
                    'job_source': 'portal',
                    'portal_name': portal_job.get('portal_name'),
                    'original_url': portal_job.get('original_url'),
                })

        return sorted(matches, key=lambda m: m['score'], reverse=True)


portal_matching_service = PortalMatchingService()
