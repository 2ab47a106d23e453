import pytest

from errors import NotFoundError, ValidationError
from models import JobStatus, TalentPoolActivity, TalentPoolEntry, TalentPoolJobMatch
from talent_pool import TalentPoolService


@pytest.fixture
def service():
    return TalentPoolService()


class TestTalentPoolEntries:

    def test_add_candidate_takes_snapshots(self, service, make_candidate, make_user):
        user = make_user()
        candidate = make_candidate(skills=['Python', 'Go'])

        entry = service.add_to_talent_pool(candidate.id, 'candidate', added_by=user.id,
                                           reason='Strong backend profile', tags=['backend'])

        assert entry.skills_snapshot == ['Python', 'Go']
        assert entry.experience_snapshot == candidate.experience
        assert entry.status == 'active'
        assert [a.activity_type for a in service.get_activities(entry.id)] == ['added']

    def test_add_application(self, service, make_application):
        application = make_application()

        entry = service.add_to_talent_pool(application.id, 'application', rating=4)

        assert entry.entity_type == 'application'
        assert entry.rating == 4

    def test_add_rejects_duplicates_and_bad_input(self, service, make_candidate):
        candidate = make_candidate()
        service.add_to_talent_pool(candidate.id, 'candidate')

        with pytest.raises(ValidationError):
            service.add_to_talent_pool(candidate.id, 'candidate')
        with pytest.raises(ValidationError):
            service.add_to_talent_pool(candidate.id, 'customer')
        with pytest.raises(NotFoundError):
            service.add_to_talent_pool(999, 'candidate')

    def test_update_entry(self, service, make_candidate):
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        updated = service.update_entry(entry.id, rating=5, status='contacted', tags=['senior'])

        assert updated.rating == 5
        assert updated.tags == ['senior']
        assert updated.last_contacted is not None
        activity = TalentPoolActivity.query.filter_by(talent_pool_id=entry.id, activity_type='updated').one()
        assert activity.activity_data['rating'] == 5

    def test_update_entry_rejects_unknown_status(self, service, make_candidate):
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        with pytest.raises(ValidationError):
            service.update_entry(entry.id, status='hired')

    def test_remove_entry(self, service, make_candidate):
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')
        service.add_note(entry.id, 'Follow up in spring')

        assert service.remove_from_talent_pool(entry.id) is True
        assert TalentPoolEntry.query.count() == 0
        with pytest.raises(NotFoundError):
            service.get_entry(entry.id)

    def test_get_entries_filters(self, service, make_candidate):
        first = service.add_to_talent_pool(make_candidate().id, 'candidate', rating=2, tags=['java'])
        second = service.add_to_talent_pool(make_candidate().id, 'candidate', rating=5, tags=['java', 'lead'])
        service.add_to_talent_pool(make_candidate().id, 'candidate', status='inactive')

        assert service.get_entries()['total'] == 3
        assert service.get_entries(statuses=['active'])['total'] == 2
        assert [e.id for e in service.get_entries(tags=['lead'])['entries']] == [second.id]

        rated = service.get_entries(min_rating=3)['entries']
        assert first not in rated
        assert second in rated

    def test_pagination(self, service, make_candidate):
        for _ in range(3):
            service.add_to_talent_pool(make_candidate().id, 'candidate')

        page = service.get_entries(limit=2, offset=2)

        assert page['total'] == 3
        assert len(page['entries']) == 1


class TestNotes:

    def test_add_note(self, service, make_candidate):
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        note = service.add_note(entry.id, 'Prefers remote work', note_type='call')

        assert note.content == 'Prefers remote work'
        assert [n.id for n in service.get_notes(entry.id)] == [note.id]

    def test_empty_note_is_rejected(self, service, make_candidate):
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        with pytest.raises(ValidationError):
            service.add_note(entry.id, '')


class TestJobMatches:

    def test_calculate_job_matches(self, service, make_candidate, make_job):
        job = make_job()
        make_job(title='Closed job', status=JobStatus.CLOSED)
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        matches = service.calculate_job_matches(entry.id)

        assert [m.job_id for m in matches] == [job.id]
        assert matches[0].match_score > 0
        assert service.get_job_matches(entry.id)[0].id == matches[0].id

    def test_recalculation_replaces_matches(self, service, make_candidate, make_job):
        make_job()
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        service.calculate_job_matches(entry.id)
        service.calculate_job_matches(entry.id)

        assert TalentPoolJobMatch.query.count() == 1

    def test_no_active_jobs(self, service, make_candidate):
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')

        assert service.calculate_job_matches(entry.id) == []

    def test_update_job_match_status(self, service, make_candidate, make_job):
        make_job()
        entry = service.add_to_talent_pool(make_candidate().id, 'candidate')
        match = service.calculate_job_matches(entry.id)[0]

        assert service.update_job_match_status(match.id, 'reviewed').status == 'reviewed'
        with pytest.raises(ValidationError):
            service.update_job_match_status(match.id, 'maybe')
        with pytest.raises(NotFoundError):
            service.update_job_match_status(999, 'reviewed')
