import logging
from datetime import datetime
from database import db
from errors import NotFoundError, ValidationError
from matching.customer_requirement_matcher import talent_pool_entity
from matching.talent_pool_job_matcher import TalentPoolJobMatcher
from models import Application, Candidate, TalentPoolActivity, TalentPoolEntry, TalentPoolJobMatch, TalentPoolNote
from utils import parse_datetime

logger = logging.getLogger(__name__)

ENTRY_TYPES = ('candidate', 'application')
ENTRY_STATUSES = ('active', 'inactive', 'contacted', 'not_interested')
JOB_MATCH_STATUSES = ('new', 'reviewed', 'contacted', 'rejected', 'accepted')
UPDATABLE_FIELDS = ('reason', 'notes', 'rating', 'tags', 'status')


class TalentPoolService:

    def __init__(self, job_matcher=None):
        self.job_matcher = job_matcher or TalentPoolJobMatcher()

    def _source(self, entity_type, entity_id):
        if entity_type == 'candidate':
            return db.session.get(Candidate, entity_id)
        return db.session.get(Application, entity_id)

    def add_to_talent_pool(self, entity_id, entity_type, added_by=None, reason=None, notes=None,
                           rating=None, tags=None, status='active', reminder_date=None):
        if entity_type not in ENTRY_TYPES:
            raise ValidationError(f"Unknown entity type '{entity_type}'")

        source = self._source(entity_type, entity_id)
        if not source:
            raise NotFoundError(f"{entity_type} {entity_id} not found")

        if TalentPoolEntry.query.filter_by(entity_id=entity_id, entity_type=entity_type).first():
            raise ValidationError(f"{entity_type} {entity_id} is already in the talent pool")

        entry = TalentPoolEntry(
            entity_id=entity_id,
            entity_type=entity_type,
            added_by=added_by,
            reason=reason,
            notes=notes,
            rating=rating,
            tags=tags or [],
            skills_snapshot=source.skills,
            experience_snapshot=source.experience,
            status=status or 'active',
            reminder_date=parse_datetime(reminder_date)
        )
        db.session.add(entry)
        db.session.flush()
        self.log_activity(entry.id, 'added', {'reason': reason}, created_by=added_by, commit=False)
        db.session.commit()

        logger.info(f"Added {entity_type} {entity_id} to talent pool as entry {entry.id}")
        return entry

    def get_entry(self, entry_id):
        entry = db.session.get(TalentPoolEntry, entry_id)
        if not entry:
            raise NotFoundError(f"Talent pool entry {entry_id} not found")
        return entry

    def update_entry(self, entry_id, updated_by=None, **fields):
        entry = self.get_entry(entry_id)

        if 'status' in fields and fields['status'] not in ENTRY_STATUSES:
            raise ValidationError(f"Unknown talent pool status '{fields['status']}'")

        changed = {}
        for field in UPDATABLE_FIELDS:
            if field in fields:
                setattr(entry, field, fields[field])
                changed[field] = fields[field]
        if 'reminder_date' in fields:
            entry.reminder_date = parse_datetime(fields['reminder_date'])
            changed['reminder_date'] = fields['reminder_date']
        if fields.get('status') == 'contacted':
            entry.last_contacted = datetime.utcnow()

        if changed:
            self.log_activity(entry.id, 'updated', changed, created_by=updated_by, commit=False)
        db.session.commit()
        return entry

    def remove_from_talent_pool(self, entry_id):
        entry = self.get_entry(entry_id)
        db.session.delete(entry)
        db.session.commit()
        return True

    def get_entries(self, entity_type=None, statuses=None, min_rating=None, tags=None,
                    limit=20, offset=0):
        query = TalentPoolEntry.query
        if entity_type:
            query = query.filter_by(entity_type=entity_type)
        if statuses:
            query = query.filter(TalentPoolEntry.status.in_(statuses))
        if min_rating is not None:
            query = query.filter(db.or_(TalentPoolEntry.rating.is_(None), TalentPoolEntry.rating >= min_rating))

        entries = query.order_by(TalentPoolEntry.added_date.desc()).all()
        if tags:
            entries = [e for e in entries if all(tag in (e.tags or []) for tag in tags)]

        return {'entries': entries[offset:offset + limit], 'total': len(entries)}

    def add_note(self, entry_id, content, created_by=None, note_type='general'):
        if not content:
            raise ValidationError("Note content is required")

        entry = self.get_entry(entry_id)
        note = TalentPoolNote(talent_pool_id=entry.id, content=content, created_by=created_by,
                              note_type=note_type)
        db.session.add(note)
        self.log_activity(entry.id, 'note_added', {'note_type': note_type}, created_by=created_by, commit=False)
        db.session.commit()
        return note

    def get_notes(self, entry_id):
        self.get_entry(entry_id)
        return TalentPoolNote.query.filter_by(talent_pool_id=entry_id)\
            .order_by(TalentPoolNote.created_at.desc()).all()

    def log_activity(self, entry_id, activity_type, activity_data=None, created_by=None, commit=True):
        activity = TalentPoolActivity(talent_pool_id=entry_id, activity_type=activity_type,
                                      activity_data=activity_data, created_by=created_by)
        db.session.add(activity)
        if commit:
            db.session.commit()
        return activity

    def get_activities(self, entry_id):
        return TalentPoolActivity.query.filter_by(talent_pool_id=entry_id)\
            .order_by(TalentPoolActivity.created_at.desc()).all()

    def calculate_job_matches(self, entry_id):
        entry = self.get_entry(entry_id)
        _, data = talent_pool_entity(entry)
        if data is None:
            raise NotFoundError(f"{entry.entity_type} {entry.entity_id} not found")

        matches = self.job_matcher.calculate_matches_for_talent_pool(data, entry.id)
        self.log_activity(entry.id, 'job_matches_calculated', {'count': len(matches)})
        return matches

    def get_job_matches(self, entry_id):
        self.get_entry(entry_id)
        return TalentPoolJobMatch.query.filter_by(talent_pool_id=entry_id)\
            .order_by(TalentPoolJobMatch.match_score.desc()).all()

    def update_job_match_status(self, match_id, status):
        if status not in JOB_MATCH_STATUSES:
            raise ValidationError(f"Unknown job match status '{status}'")

        match = db.session.get(TalentPoolJobMatch, match_id)
        if not match:
            raise NotFoundError(f"Job match {match_id} not found")

        match.status = status
        db.session.commit()
        return match


talent_pool_service = TalentPoolService()
