from datetime import datetime
from database import db
from flask_login import UserMixin
from sqlalchemy import Enum
import enum


def _iso(value):
    return value.isoformat() if value else None


class UserRole(enum.Enum):
    ADMIN = "admin"
    RECRUITER = "recruiter"
    USER = "user"

class CandidateStatus(enum.Enum):
    NEW = "new"
    ACTIVE = "active"
    IN_PROCESS = "in_process"
    INACTIVE = "inactive"
    REJECTED = "rejected"
    HIRED = "hired"

class JobStatus(enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"
    DRAFT = "draft"

class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), default=UserRole.USER.value)
    is_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    notification_settings = db.relationship('NotificationSettings', backref='user', uselist=False,
                                            cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'is_admin': self.is_admin,
        }

class NotificationSettings(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    notify_matchings = db.Column(db.Boolean, default=True)
    notify_tasks = db.Column(db.Boolean, default=True)
    notify_applications = db.Column(db.Boolean, default=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'notify_matchings': self.notify_matchings,
            'notify_tasks': self.notify_tasks,
            'notify_applications': self.notify_applications,
        }

# Customers and their requirements
class Customer(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), default='customer')  # customer, prospect
    status = db.Column(db.String(20), default='active')  # active, inactive, prospect, former
    industry = db.Column(db.String(100))
    website = db.Column(db.String(200))
    address = db.Column(db.JSON)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contacts = db.relationship('Contact', backref='customer', lazy=True, cascade='all, delete-orphan')
    requirements = db.relationship('Requirement', backref='customer', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'status': self.status,
            'industry': self.industry,
            'website': self.website,
            'address': self.address,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
        }

class Contact(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id'), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    position = db.Column(db.String(100))
    department = db.Column(db.String(100))
    email = db.Column(db.String(120))
    phone = db.Column(db.String(30))
    mobile = db.Column(db.String(30))
    is_main_contact = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'position': self.position,
            'department': self.department,
            'email': self.email,
            'phone': self.phone,
            'mobile': self.mobile,
            'is_main_contact': self.is_main_contact,
        }

class Requirement(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    department = db.Column(db.String(100))
    location = db.Column(db.String(200))
    salary_min = db.Column(db.Integer)
    salary_max = db.Column(db.Integer)
    skills = db.Column(db.JSON)  # List of required skills
    experience = db.Column(db.Integer)  # Required years
    education = db.Column(db.String(100))
    work_model = db.Column(db.String(50))
    status = db.Column(db.String(20), default='open')  # open, in_progress, filled, cancelled
    priority = db.Column(db.String(20), default='medium')  # low, medium, high, urgent
    is_remote = db.Column(db.Boolean, default=False)
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)
    assigned_to = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    matches = db.relationship('CustomerRequirementMatch', backref='requirement', lazy=True,
                              cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'title': self.title,
            'description': self.description,
            'department': self.department,
            'location': self.location,
            'salary_min': self.salary_min,
            'salary_max': self.salary_max,
            'skills': self.skills or [],
            'experience': self.experience,
            'education': self.education,
            'work_model': self.work_model,
            'status': self.status,
            'priority': self.priority,
            'is_remote': self.is_remote,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'assigned_to': self.assigned_to,
        }

# Jobs, candidates and applications
class Job(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    company = db.Column(db.String(200))
    description = db.Column(db.Text, nullable=False)
    requirements = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(100))
    salary_min = db.Column(db.Integer)
    salary_max = db.Column(db.Integer)
    experience_level = db.Column(db.String(50))  # entry, mid, senior
    experience_years = db.Column(db.Integer)
    education_required = db.Column(db.String(100))
    job_type = db.Column(db.String(50))  # full-time, part-time, contract
    work_model = db.Column(db.String(50))
    remote_work = db.Column(db.Boolean, default=False)
    status = db.Column(Enum(JobStatus), default=JobStatus.ACTIVE)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'))

    required_skills = db.Column(db.JSON)  # List of required skills
    preferred_skills = db.Column(db.JSON)  # List of preferred skills

    applications = db.relationship('Application', backref='job', lazy=True)

    @property
    def salary_range(self):
        if self.salary_min and self.salary_max:
            return f"{self.salary_min}-{self.salary_max}"
        if self.salary_min or self.salary_max:
            return str(self.salary_min or self.salary_max)
        return ''

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'company': self.company,
            'description': self.description,
            'requirements': self.requirements,
            'location': self.location,
            'salary_min': self.salary_min,
            'salary_max': self.salary_max,
            'salary_range': self.salary_range,
            'experience_level': self.experience_level,
            'experience_years': self.experience_years,
            'education_required': self.education_required,
            'job_type': self.job_type,
            'work_model': self.work_model,
            'remote_work': self.remote_work,
            'status': self.status.value if self.status else None,
            'required_skills': self.required_skills or [],
            'preferred_skills': self.preferred_skills or [],
            'skills': self.required_skills or [],
            'created_at': _iso(self.created_at),
        }

class Candidate(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20))
    position = db.Column(db.String(200))
    location = db.Column(db.String(100))
    status = db.Column(Enum(CandidateStatus), default=CandidateStatus.ACTIVE)

    skills = db.Column(db.JSON)
    experience = db.Column(db.JSON)  # List of {position, company, period, years}
    education = db.Column(db.JSON)
    qualification_profile = db.Column(db.JSON)
    preferred_work_model = db.Column(db.String(50))
    salary_expectation = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_updated = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'position': self.position,
            'location': self.location,
            'status': self.status.value if self.status else None,
            'skills': self.skills or [],
            'experience': self.experience or [],
            'education': self.education,
            'qualification_profile': self.qualification_profile or {},
            'preferred_work_model': self.preferred_work_model,
            'salary_expectation': self.salary_expectation,
            'created_at': _iso(self.created_at),
        }

class Application(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('job.id'))
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidate.id'))
    applicant_name = db.Column(db.String(100), nullable=False)
    applicant_email = db.Column(db.String(120), nullable=False)
    applicant_phone = db.Column(db.String(30))
    applicant_location = db.Column(db.String(100))
    position = db.Column(db.String(200))
    status = db.Column(db.String(20), default='new')  # new, in_review, contacted, interview, offer, rejected, hired

    skills = db.Column(db.JSON)
    experience = db.Column(db.JSON)
    education = db.Column(db.JSON)
    preferred_work_model = db.Column(db.String(50))
    cover_letter = db.Column(db.Text)

    match_score = db.Column(db.Float)
    match_data = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'candidate_id': self.candidate_id,
            'name': self.applicant_name,
            'applicant_name': self.applicant_name,
            'applicant_email': self.applicant_email,
            'applicant_phone': self.applicant_phone,
            'applicant_location': self.applicant_location,
            'position': self.position,
            'status': self.status,
            'skills': self.skills or [],
            'experience': self.experience or [],
            'education': self.education,
            'preferred_work_model': self.preferred_work_model,
            'match_score': self.match_score,
            'match_data': self.match_data,
            'created_at': _iso(self.created_at),
        }

# Talent pool
class TalentPoolEntry(db.Model):
    __tablename__ = 'talent_pool'

    id = db.Column(db.Integer, primary_key=True)
    entity_id = db.Column(db.Integer, nullable=False)
    entity_type = db.Column(db.String(20), nullable=False)  # candidate, application
    added_date = db.Column(db.DateTime, default=datetime.utcnow)
    added_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    reason = db.Column(db.Text)
    notes = db.Column(db.Text)
    rating = db.Column(db.Integer)
    tags = db.Column(db.JSON)
    skills_snapshot = db.Column(db.JSON)
    experience_snapshot = db.Column(db.JSON)
    status = db.Column(db.String(20), default='active')  # active, inactive, contacted, not_interested
    reminder_date = db.Column(db.DateTime)
    last_contacted = db.Column(db.DateTime)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    notes_list = db.relationship('TalentPoolNote', backref='entry', lazy=True, cascade='all, delete-orphan')
    activities = db.relationship('TalentPoolActivity', backref='entry', lazy=True, cascade='all, delete-orphan')
    job_matches = db.relationship('TalentPoolJobMatch', backref='entry', lazy=True, cascade='all, delete-orphan')

    __table_args__ = (db.UniqueConstraint('entity_id', 'entity_type', name='unique_talent_pool_entity'),)

    def to_dict(self):
        return {
            'id': self.id,
            'entity_id': self.entity_id,
            'entity_type': self.entity_type,
            'added_date': _iso(self.added_date),
            'added_by': self.added_by,
            'reason': self.reason,
            'notes': self.notes,
            'rating': self.rating,
            'tags': self.tags or [],
            'skills_snapshot': self.skills_snapshot,
            'experience_snapshot': self.experience_snapshot,
            'status': self.status,
            'reminder_date': _iso(self.reminder_date),
            'last_contacted': _iso(self.last_contacted),
        }

class TalentPoolNote(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    talent_pool_id = db.Column(db.Integer, db.ForeignKey('talent_pool.id'), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    content = db.Column(db.Text, nullable=False)
    note_type = db.Column(db.String(30), default='general')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'talent_pool_id': self.talent_pool_id,
            'created_by': self.created_by,
            'content': self.content,
            'note_type': self.note_type,
            'created_at': _iso(self.created_at),
        }

class TalentPoolActivity(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    talent_pool_id = db.Column(db.Integer, db.ForeignKey('talent_pool.id'), nullable=False)
    activity_type = db.Column(db.String(50), nullable=False)
    activity_data = db.Column(db.JSON)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'talent_pool_id': self.talent_pool_id,
            'activity_type': self.activity_type,
            'activity_data': self.activity_data,
            'created_by': self.created_by,
            'created_at': _iso(self.created_at),
        }

class TalentPoolJobMatch(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    talent_pool_id = db.Column(db.Integer, db.ForeignKey('talent_pool.id'), nullable=False)
    job_id = db.Column(db.Integer, db.ForeignKey('job.id'), nullable=False)
    match_score = db.Column(db.Float, nullable=False)
    match_details = db.Column(db.JSON)
    status = db.Column(db.String(20), default='new')  # new, reviewed, contacted, rejected, accepted
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_updated = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    job = db.relationship('Job')

    __table_args__ = (db.UniqueConstraint('talent_pool_id', 'job_id', name='unique_talent_pool_job'),)

    def to_dict(self):
        return {
            'id': self.id,
            'talent_pool_id': self.talent_pool_id,
            'job_id': self.job_id,
            'job_title': self.job.title if self.job else None,
            'match_score': self.match_score,
            'match_details': self.match_details,
            'status': self.status,
            'created_at': _iso(self.created_at),
        }

class CustomerRequirementMatch(db.Model):
    __tablename__ = 'customer_requirement_matches'

    id = db.Column(db.Integer, primary_key=True)
    requirement_id = db.Column(db.Integer, db.ForeignKey('requirement.id'), nullable=False)
    entity_type = db.Column(db.String(20), nullable=False)  # candidate, application, talent_pool
    entity_id = db.Column(db.Integer, nullable=False)
    match_score = db.Column(db.Float, nullable=False)
    match_details = db.Column(db.JSON)
    status = db.Column(db.String(20), default='new')  # new, viewed, contacted, rejected, accepted
    last_contact = db.Column(db.DateTime)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('requirement_id', 'entity_type', 'entity_id',
                                          name='unique_requirement_entity_match'),)

    def to_dict(self):
        return {
            'id': self.id,
            'requirement_id': self.requirement_id,
            'requirement_title': self.requirement.title if self.requirement else None,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'match_score': self.match_score,
            'match_details': self.match_details,
            'status': self.status,
            'last_contact': _iso(self.last_contact),
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

# Coordination
class EditingLock(db.Model):
    __tablename__ = 'editing_locks'

    id = db.Column(db.Integer, primary_key=True)
    entity_id = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(100), nullable=False)
    locked_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    active = db.Column(db.Boolean, default=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.Index('ix_editing_locks_entity', 'entity_id', 'entity_type', 'active'),)

    def to_dict(self):
        return {
            'id': self.id,
            'entity_id': self.entity_id,
            'entity_type': self.entity_type,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'locked_at': _iso(self.locked_at),
            'expires_at': _iso(self.expires_at),
            'active': self.active,
        }

# Scheduling
class ScheduledTask(db.Model):
    __tablename__ = 'scheduled_tasks'

    id = db.Column(db.Integer, primary_key=True)
    task_type = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(20), default='pending', index=True)
    entity_id = db.Column(db.String(64))
    entity_type = db.Column(db.String(50))
    scheduled_for = db.Column(db.DateTime, nullable=False)
    interval_type = db.Column(db.String(20), default='once')
    interval_value = db.Column(db.Integer)
    custom_schedule = db.Column(db.JSON)
    config = db.Column(db.JSON)
    last_run = db.Column(db.DateTime)
    next_run = db.Column(db.DateTime, index=True)
    result = db.Column(db.JSON)
    error = db.Column(db.Text)
    created_by = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'task_type': self.task_type,
            'status': self.status,
            'entity_id': self.entity_id,
            'entity_type': self.entity_type,
            'scheduled_for': _iso(self.scheduled_for),
            'interval_type': self.interval_type,
            'interval_value': self.interval_value,
            'custom_schedule': self.custom_schedule,
            'config': self.config,
            'last_run': _iso(self.last_run),
            'next_run': _iso(self.next_run),
            'result': self.result,
            'error': self.error,
            'created_by': self.created_by,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

class SchedulerLog(db.Model):
    __tablename__ = 'scheduler_logs'

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, index=True)
    task_type = db.Column(db.String(30))
    action = db.Column(db.String(20), nullable=False)  # create, start, complete, fail, cancel
    status = db.Column(db.String(20))
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'task_id': self.task_id,
            'task_type': self.task_type,
            'action': self.action,
            'status': self.status,
            'details': self.details,
            'created_at': _iso(self.created_at),
        }

class PostPipelineItem(db.Model):
    __tablename__ = 'post_pipeline_items'

    id = db.Column(db.Integer, primary_key=True)
    pipeline_type = db.Column(db.String(20), nullable=False)  # social_media, movido
    platform = db.Column(db.String(20))
    entity_id = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(20), default='pending', index=True)
    priority = db.Column(db.Integer, default=0)
    scheduled_for = db.Column(db.DateTime)
    scheduled_task_id = db.Column(db.Integer)
    content_template = db.Column(db.String(100))
    content_params = db.Column(db.JSON)
    target_audience = db.Column(db.JSON)
    repost_of_id = db.Column(db.Integer)
    posted_at = db.Column(db.DateTime)
    result = db.Column(db.JSON)
    error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'pipeline_type': self.pipeline_type,
            'platform': self.platform,
            'entity_id': self.entity_id,
            'entity_type': self.entity_type,
            'status': self.status,
            'priority': self.priority,
            'scheduled_for': _iso(self.scheduled_for),
            'scheduled_task_id': self.scheduled_task_id,
            'content_template': self.content_template,
            'content_params': self.content_params,
            'target_audience': self.target_audience,
            'repost_of_id': self.repost_of_id,
            'posted_at': _iso(self.posted_at),
            'result': self.result,
            'error': self.error,
            'created_at': _iso(self.created_at),
        }

class PipelineSettings(db.Model):
    __tablename__ = 'pipeline_settings'

    id = db.Column(db.Integer, primary_key=True)
    pipeline_type = db.Column(db.String(20), nullable=False)
    platform = db.Column(db.String(20))
    daily_limit = db.Column(db.Integer, default=5)
    posting_hours = db.Column(db.JSON)  # [9, 12, 15]
    posting_days = db.Column(db.JSON)  # 0 = Sunday
    min_interval_minutes = db.Column(db.Integer, default=30)
    enabled = db.Column(db.Boolean, default=True)
    config = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('pipeline_type', 'platform', name='unique_pipeline_platform'),)

    def to_dict(self):
        return {
            'id': self.id,
            'pipeline_type': self.pipeline_type,
            'platform': self.platform,
            'daily_limit': self.daily_limit,
            'posting_hours': self.posting_hours,
            'posting_days': self.posting_days,
            'min_interval_minutes': self.min_interval_minutes,
            'enabled': self.enabled,
            'config': self.config,
        }

class SyncSettings(db.Model):
    __tablename__ = 'sync_settings'

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(64), nullable=False)
    sync_interval_type = db.Column(db.String(20), default='daily')
    sync_interval_value = db.Column(db.Integer, default=1)
    custom_schedule = db.Column(db.JSON)
    last_sync = db.Column(db.DateTime)
    next_sync = db.Column(db.DateTime)
    enabled = db.Column(db.Boolean, default=True)
    config = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('entity_type', 'entity_id', name='unique_sync_entity'),)

    def to_dict(self):
        return {
            'id': self.id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'sync_interval_type': self.sync_interval_type,
            'sync_interval_value': self.sync_interval_value,
            'custom_schedule': self.custom_schedule,
            'last_sync': _iso(self.last_sync),
            'next_sync': _iso(self.next_sync),
            'enabled': self.enabled,
            'config': self.config,
        }

# Notifications and portals
class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    entity_type = db.Column(db.String(50))
    entity_id = db.Column(db.String(64))
    action = db.Column(db.String(50))
    sender_id = db.Column(db.String(64), default='system')
    importance = db.Column(db.String(10), default='normal')  # low, normal, high
    link = db.Column(db.JSON)
    read = db.Column(db.Boolean, default=False)
    read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'action': self.action,
            'sender_id': self.sender_id,
            'importance': self.importance,
            'link': self.link,
            'read': self.read,
            'read_at': _iso(self.read_at),
            'created_at': _iso(self.created_at),
        }

class JobPortal(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    portal_type = db.Column(db.String(30), nullable=False)  # stepstone, indeed, linkedin, xing
    base_url = db.Column(db.String(300))
    api_key = db.Column(db.String(300))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'portal_type': self.portal_type,
            'base_url': self.base_url,
            'is_active': self.is_active,
        }
