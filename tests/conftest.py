import os

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SCHEDULER_ENABLED'] = 'false'
for key in ('MOVIDO_API_KEY', 'LINKEDIN_ACCESS_TOKEN', 'XING_ACCESS_TOKEN', 'FACEBOOK_ACCESS_TOKEN',
            'INSTAGRAM_ACCESS_TOKEN', 'TWITTER_BEARER_TOKEN'):
    os.environ[key] = ''

import pytest
from werkzeug.security import generate_password_hash

from app import app as flask_app
from database import db
from models import Application, Candidate, CandidateStatus, Customer, Job, JobStatus, Requirement, User
from notifications import realtime_notifier


@pytest.fixture(scope='session')
def app():
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture(autouse=True)
def database(app):
    with app.app_context():
        db.drop_all()
        db.create_all()
        yield db
        db.session.remove()
    realtime_notifier.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    def _make_user(username='recruiter', role='recruiter', password='secret'):
        user = User(
            username=username,
            email=f'{username}@example.com',
            password_hash=generate_password_hash(password),
            role=role,
            is_admin=role == 'admin'
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def logged_in_client(client, make_user):
    user = make_user('alice', 'recruiter')
    response = client.post('/api/login', json={'username': 'alice', 'password': 'secret'})
    assert response.status_code == 200
    client.user = user
    return client


@pytest.fixture
def make_job():
    def _make_job(**fields):
        data = {
            'title': 'Python Developer',
            'company': 'Acme GmbH',
            'description': 'Backend development in a small team',
            'requirements': 'Python, Django, SQL and 3 years experience. Bachelor degree.',
            'location': 'Berlin',
            'status': JobStatus.ACTIVE,
            'required_skills': ['Python', 'Django', 'SQL'],
            'experience_years': 3,
            'education_required': 'Bachelor',
        }
        data.update(fields)
        job = Job(**data)
        db.session.add(job)
        db.session.commit()
        return job
    return _make_job


@pytest.fixture
def make_candidate():
    counter = {'n': 0}

    def _make_candidate(**fields):
        counter['n'] += 1
        data = {
            'name': f"Candidate {counter['n']}",
            'email': f"candidate{counter['n']}@example.com",
            'position': 'Backend Developer',
            'location': 'Berlin',
            'status': CandidateStatus.ACTIVE,
            'skills': ['Python', 'Django', 'SQL'],
            'experience': [{'position': 'Developer', 'company': 'Foo', 'years': 4}],
            'education': [{'degree': 'Master of Science'}],
        }
        data.update(fields)
        candidate = Candidate(**data)
        db.session.add(candidate)
        db.session.commit()
        return candidate
    return _make_candidate


@pytest.fixture
def make_application():
    def _make_application(job=None, **fields):
        data = {
            'job_id': job.id if job else None,
            'applicant_name': 'Bob Applicant',
            'applicant_email': 'bob@example.com',
            'applicant_location': 'Berlin',
            'position': 'Developer',
            'status': 'new',
            'skills': ['Python', 'Flask'],
            'experience': [{'position': 'Developer', 'years': 2}],
            'education': 'Bachelor of Science',
        }
        data.update(fields)
        application = Application(**data)
        db.session.add(application)
        db.session.commit()
        return application
    return _make_application


@pytest.fixture
def make_requirement():
    def _make_requirement(**fields):
        customer = Customer(name='Customer AG')
        db.session.add(customer)
        db.session.flush()

        data = {
            'customer_id': customer.id,
            'title': 'Senior Python Engineer',
            'description': 'Vollzeit position for a backend engineer',
            'location': 'Berlin',
            'skills': ['Python', 'Django', 'SQL'],
            'experience': 3,
            'education': 'Bachelor',
            'work_model': 'Vollzeit',
            'status': 'open',
        }
        data.update(fields)
        requirement = Requirement(**data)
        db.session.add(requirement)
        db.session.commit()
        return requirement
    return _make_requirement
