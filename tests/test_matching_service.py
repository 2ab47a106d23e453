import pytest

from matching.matching_service import (MatchingService, extract_experience_years, parse_salary_range,
                                       skill_names)


@pytest.fixture
def service():
    return MatchingService()


class TestHelpers:

    def test_skill_names_accepts_strings_and_dicts(self):
        assert skill_names(['Python', {'name': 'SQL', 'level': 3}, '']) == ['Python', 'SQL']
        assert skill_names('["Go", "Rust"]') == ['Go', 'Rust']
        assert skill_names('Python, Django') == ['Python', 'Django']
        assert skill_names(None) == []

    def test_extract_experience_years(self):
        assert extract_experience_years('Mindestens 5 Jahre Berufserfahrung') == 5
        assert extract_experience_years('3-5 years of experience') == 4
        assert extract_experience_years('no numbers here') == 0
        assert extract_experience_years('') == 0

    def test_parse_salary_range(self):
        assert parse_salary_range('50000-70000') == {'min': 50000, 'max': 70000}
        assert parse_salary_range('50.000 - 70.000 EUR') == {'min': 50000, 'max': 70000}
        assert parse_salary_range('50000') == {'min': 50000, 'max': 60000.0}
        assert parse_salary_range('') == {}
        assert parse_salary_range('negotiable') == {}


class TestSkillExtraction:

    def test_keywords_match_on_word_boundaries(self, service):
        skills = service.extract_skills_from_requirements('Good JavaScript skills required')

        assert 'javascript' in skills
        assert 'java' not in skills
        assert 'go' not in skills

    def test_keywords_with_symbols(self, service):
        skills = service.extract_skills_from_requirements('C# and .NET, plus Docker')

        assert 'c#' in skills
        assert '.net' in skills
        assert 'docker' in skills

    def test_match_skills_exact_synonym_and_missing(self, service):
        result = service.match_skills(['python', 'javascript', 'kubernetes'], ['Python', 'JS'])

        assert result['matched'] == ['python', 'javascript']
        assert result['missing'] == ['kubernetes']
        assert result['partial_matches'] == []

    def test_match_skills_without_fuzzy(self, service):
        result = service.match_skills(['postgresql'], ['postgresq'], fuzzy_matching=False)

        assert result['missing'] == ['postgresql']

    def test_match_skills_fuzzy(self, service):
        result = service.match_skills(['postgresql'], ['postgresq'])

        assert result['matched'] == ['postgresql']

    def test_match_skills_keeps_dots(self, service):
        result = service.match_skills(['.NET', 'node', 'net'], ['.Net', 'Node.js'], fuzzy_matching=False)

        assert result['matched'] == ['.net', 'node']
        assert result['missing'] == ['net']

    def test_match_skills_without_candidate_skills(self, service):
        result = service.match_skills(['python'], [])

        assert result['missing'] == ['python']


class TestPartialScores:

    @pytest.mark.parametrize('required, actual, expected', [
        (0, 0, 100),
        (3, 5, 100),
        (5, 3, 75),
        (5, 4, 90),
        (10, 1, 15),
    ])
    def test_match_experience(self, service, required, actual, expected):
        assert service.match_experience(required, actual) == expected

    @pytest.mark.parametrize('job_location, candidate_location, expected', [
        ('', 'Berlin', 30),
        ('Remote', 'Remote', 100),
        ('Remote', 'Berlin', 90),
        ('Berlin', 'berlin', 100),
        ('Berlin, Mitte', 'Berlin', 95),
        ('10115', '10117', 80),
        ('München', 'Nürnberg', 75),
        ('Hybrid Hamburg', 'Berlin', 50),
        ('Hamburg', 'Berlin', 30),
    ])
    def test_match_location(self, service, job_location, candidate_location, expected):
        assert service.match_location(job_location, candidate_location) == expected

    def test_match_education(self, service):
        assert service.match_education('', 'master') == 50
        assert service.match_education('bachelor', 'Master of Science') == 100
        assert service.match_education('master', 'Bachelor') == 70
        assert service.match_education('master', 'Abitur') == 35

    def test_match_salary(self, service):
        job_range = {'min': 50000, 'max': 70000}

        assert service.match_salary({}, 90000) == 100
        assert service.match_salary(job_range, 60000) == 100
        assert service.match_salary(job_range, 75000) == 85
        assert service.match_salary(job_range, 200000) == 0

    def test_salary_expectation(self, service):
        assert service.extract_salary_expectation({'salary_expectation': 55000}) == 55000
        assert service.extract_salary_expectation({'position': 'Senior Developer',
                                                   'skills': ['React', 'Python']}) == 71500
        assert service.extract_salary_expectation({}) == 60000


class TestCalculateMatch:

    def test_perfect_match(self, service):
        job = {
            'requirements': 'Python, Django and SQL. 3 years experience. Bachelor degree.',
            'location': 'Berlin',
            'salary_range': '50000-70000',
        }
        candidate = {
            'skills': ['Python', 'Django', 'SQL'],
            'experience': [{'position': 'Developer', 'years': 4}],
            'location': 'Berlin',
            'education': 'Master of Science',
            'salary_expectation': 60000,
        }

        result = service.calculate_match(job, candidate)

        assert result['score'] == 100
        assert result['matched_skills'] == ['python', 'django', 'sql']
        assert result['missing_skills'] == []
        assert result['location_match'] is True
        assert result['salary_match'] is True
        assert result['experience_match'] is True

    def test_defaults_for_missing_data(self, service):
        result = service.calculate_match({'requirements': 'Bachelor', 'location': 'Berlin'},
                                         {'location': 'Berlin', 'education': 'Master'})

        assert result['details'] == {
            'skill_score': 50,
            'experience_score': 100,
            'location_score': 100,
            'salary_score': 100,
            'education_score': 100,
        }
        assert result['score'] == 80

    def test_required_skills_are_merged(self, service):
        result = service.calculate_match({'requirements': 'Python', 'required_skills': ['Terraform']},
                                         {'skills': ['Python']})

        assert result['matched_skills'] == ['python']
        assert result['missing_skills'] == ['terraform']
        assert result['details']['skill_score'] == 50

    def test_custom_weights(self, service):
        result = service.calculate_match(
            {'requirements': 'Python'},
            {'skills': ['Python']},
            weights={'skills': 1, 'experience': 0, 'location': 0, 'education': 0, 'salary': 0}
        )

        assert result['score'] == 100
