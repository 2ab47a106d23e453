import logging
from datetime import datetime, timedelta
from database import db
from errors import NotFoundError, ValidationError
from matching.job_matcher import JobMatcher, summarize_match
from models import (Application, Candidate, CandidateStatus, CustomerRequirementMatch, Requirement,
                    TalentPoolEntry)
from notifications import notification_service
from utils import ConfigHelper, log_processing_time

logger = logging.getLogger(__name__)

ENTITY_TYPES = ('candidate', 'application', 'talent_pool')
MATCH_STATUSES = ('new', 'viewed', 'contacted', 'rejected', 'accepted')
MATCHABLE_APPLICATION_STATUSES = ('new', 'in_review', 'contacted')

ENTITY_LABELS = {
    'candidate': 'Candidate',
    'application': 'Applicant',
    'talent_pool': 'Talent pool entry',
}


def match_importance(score):
    if score >= 90:
        return 'high'
    if score >= 75:
        return 'normal'
    return 'low'


def requirement_to_job(requirement):
    """Shape a customer requirement like a job so the JobMatcher can score it"""
    return {
        'id': requirement.id,
        'title': requirement.title,
        'description': requirement.description or '',
        'skills': requirement.skills or [],
        'location': requirement.location or '',
        'remote_work': bool(requirement.is_remote),
        'experience_years': requirement.experience or 0,
        'education_required': requirement.education or '',
        'work_model': requirement.work_model,
    }


def talent_pool_entity(entry):
    """Underlying candidate/application data with the pool snapshots on top"""
    if entry.entity_type == 'candidate':
        base = db.session.get(Candidate, entry.entity_id)
    else:
        base = db.session.get(Application, entry.entity_id)
    if base is None:
        return None, None

    data = base.to_dict()
    if entry.skills_snapshot:
        data['skills'] = entry.skills_snapshot
    if entry.experience_snapshot:
        data['experience'] = entry.experience_snapshot
    name = base.name if entry.entity_type == 'candidate' else base.applicant_name
    return name, data


class CustomerRequirementMatcher:
    """Scores candidates, applications and talent pool entries against
    customer requirements and stores the results."""

    def __init__(self, job_matcher=None, notifier=None):
        self.job_matcher = job_matcher or JobMatcher()
        self.notifier = notifier or notification_service

    def calculate_match(self, entity, requirement):
        return self.job_matcher.calculate_match(entity, requirement_to_job(requirement))

    def _threshold(self, min_score):
        if min_score is None:
            return ConfigHelper.get_matching_config()['notification_threshold']
        return min_score

    def matchable_entities(self):
        """Yield (entity_type, entity_id, name, data) for everything eligible"""
        candidates = Candidate.query.filter(Candidate.status == CandidateStatus.ACTIVE).all()
        for candidate in candidates:
            yield 'candidate', candidate.id, candidate.name, candidate.to_dict()

        applications = Application.query.filter(
            Application.status.in_(MATCHABLE_APPLICATION_STATUSES)).all()
        for application in applications:
            yield 'application', application.id, application.applicant_name, application.to_dict()

        entries = TalentPoolEntry.query.filter_by(status='active').all()
        for entry in entries:
            name, data = talent_pool_entity(entry)
            if data is not None:
                yield 'talent_pool', entry.id, name, data

    def load_entity(self, entity_type, entity_id):
        if entity_type not in ENTITY_TYPES:
            raise ValidationError(f"Unknown entity type '{entity_type}'")

        if entity_type == 'candidate':
            candidate = db.session.get(Candidate, entity_id)
            if candidate:
                return candidate.name, candidate.to_dict()
        elif entity_type == 'application':
            application = db.session.get(Application, entity_id)
            if application:
                return application.applicant_name, application.to_dict()
        else:
            entry = db.session.get(TalentPoolEntry, entity_id)
            if entry:
                name, data = talent_pool_entity(entry)
                if data is not None:
                    return name, data

        raise NotFoundError(f"{entity_type} {entity_id} not found")

    def _store_match(self, requirement, entity_type, entity_id, result):
        match = CustomerRequirementMatch(
            requirement_id=requirement.id,
            entity_type=entity_type,
            entity_id=entity_id,
            match_score=result['overall_score'],
            match_details=summarize_match(result),
            status='new'
        )
        db.session.add(match)
        return match

    def calculate_matches_for_requirement(self, requirement_id, notify=True, min_score=None):
        requirement = db.session.get(Requirement, requirement_id)
        if not requirement:
            raise NotFoundError(f"Requirement {requirement_id} not found")

        threshold = self._threshold(min_score)

        CustomerRequirementMatch.query.filter_by(requirement_id=requirement.id)\
            .delete(synchronize_session=False)

        stored = []
        to_notify = []
        for entity_type, entity_id, name, data in list(self.matchable_entities()):
            result = self.calculate_match(data, requirement)
            if result['overall_score'] <= 0:
                continue
            match = self._store_match(requirement, entity_type, entity_id, result)
            stored.append(match)
            if notify and match.match_score >= threshold:
                to_notify.append((match, name, entity_type))

        db.session.commit()
        logger.info(f"Stored {len(stored)} matches for requirement {requirement.id}")

        for match, name, entity_type in to_notify:
            self.send_match_notification(match, requirement, name, entity_type)

        return stored

    def calculate_matches_for_entity(self, entity_type, entity_id, notify=True, min_score=None):
        name, data = self.load_entity(entity_type, entity_id)
        threshold = self._threshold(min_score)

        CustomerRequirementMatch.query.filter_by(entity_type=entity_type, entity_id=entity_id)\
            .delete(synchronize_session=False)

        stored = []
        to_notify = []
        for requirement in Requirement.query.filter_by(status='open').all():
            result = self.calculate_match(data, requirement)
            if result['overall_score'] <= 0:
                continue
            match = self._store_match(requirement, entity_type, entity_id, result)
            stored.append(match)
            if notify and match.match_score >= threshold:
                to_notify.append((match, requirement))

        db.session.commit()

        for match, requirement in to_notify:
            self.send_match_notification(match, requirement, name, entity_type)

        return stored

    @log_processing_time
    def run_full_matching(self, min_score=None):
        total = 0
        requirement_ids = [r.id for r in Requirement.query.filter_by(status='open').all()]
        for requirement_id in requirement_ids:
            total += len(self.calculate_matches_for_requirement(requirement_id, True, min_score))
        return total

    def send_match_notification(self, match, requirement, entity_name, entity_type):
        customer_name = requirement.customer.name if requirement.customer else 'Unknown customer'
        score = match.match_score
        label = ENTITY_LABELS.get(entity_type, 'Entity')

        try:
            self.notifier.notify_roles(
                ['admin', 'recruiter'],
                f"Match found: {entity_name} ({score:g}%)",
                f'{label} "{entity_name}" matches requirement "{requirement.title}" '
                f"of {customer_name} with {score:g}%.",
                category='matchings',
                entity_type=entity_type,
                entity_id=match.entity_id,
                action='match_found',
                importance=match_importance(score),
                link={'type': 'view', 'entity_type': entity_type, 'entity_id': match.entity_id,
                      'requirement_id': requirement.id}
            )
        except Exception as e:
            logger.error(f"Error sending match notification for match {match.id}: {e}")
            db.session.rollback()

    def get_matches(self, requirement_id=None, entity_type=None, entity_id=None, min_score=None,
                    status=None, limit=50, offset=0):
        query = CustomerRequirementMatch.query
        if requirement_id is not None:
            query = query.filter_by(requirement_id=requirement_id)
        if entity_type and entity_id is not None:
            query = query.filter_by(entity_type=entity_type, entity_id=entity_id)
        elif entity_type:
            query = query.filter_by(entity_type=entity_type)
        if min_score is not None:
            query = query.filter(CustomerRequirementMatch.match_score >= min_score)
        if status:
            query = query.filter_by(status=status)

        return query.order_by(CustomerRequirementMatch.match_score.desc())\
            .offset(offset).limit(limit).all()

    def update_match_status(self, match_id, status, notes=None):
        if status not in MATCH_STATUSES:
            raise ValidationError(f"Unknown match status '{status}'")

        match = db.session.get(CustomerRequirementMatch, match_id)
        if not match:
            raise NotFoundError(f"Match {match_id} not found")

        match.status = status
        if status == 'contacted':
            match.last_contact = datetime.utcnow()
        if notes is not None:
            match.notes = notes
        db.session.commit()
        return match

    def cleanup_matches(self, older_than_days=None):
        """Drop rejected and contacted matches that have not been touched recently"""
        if older_than_days is None:
            older_than_days = ConfigHelper.get_matching_config()['cleanup_days']
        cutoff = datetime.utcnow() - timedelta(days=older_than_days)

        count = CustomerRequirementMatch.query.filter(
            CustomerRequirementMatch.status.in_(('rejected', 'contacted')),
            CustomerRequirementMatch.updated_at < cutoff
        ).delete(synchronize_session=False)
        db.session.commit()

        logger.info(f"Cleaned up {count} old requirement matches")
        return count


customer_requirement_matcher = CustomerRequirementMatcher()
