import logging
from database import db
from matching.job_matcher import JobMatcher, summarize_match
from models import Job, JobStatus, TalentPoolJobMatch

logger = logging.getLogger(__name__)


class TalentPoolJobMatcher:
    """Scores a talent pool entry against every active job"""

    def __init__(self, job_matcher=None):
        self.job_matcher = job_matcher or JobMatcher()

    def calculate_match(self, entity, job):
        job_data = job.to_dict() if isinstance(job, Job) else job
        return self.job_matcher.calculate_match(entity, job_data)

    def calculate_matches_for_talent_pool(self, entity, talent_pool_id):
        """Replace the stored job matches of an entry, returns the new rows"""
        jobs = Job.query.filter_by(status=JobStatus.ACTIVE).all()
        if not jobs:
            return []

        TalentPoolJobMatch.query.filter_by(talent_pool_id=talent_pool_id)\
            .delete(synchronize_session=False)

        matches = []
        for job in jobs:
            result = self.calculate_match(entity, job)
            match = TalentPoolJobMatch(
                talent_pool_id=talent_pool_id,
                job_id=job.id,
                match_score=result['overall_score'],
                match_details=summarize_match(result),
                status='new'
            )
            db.session.add(match)
            matches.append(match)

        db.session.commit()
        logger.info(f"Calculated {len(matches)} job matches for talent pool entry {talent_pool_id}")
        return matches
