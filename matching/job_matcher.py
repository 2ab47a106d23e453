import re
from typing import Any, Dict, Optional

from matching.location_matcher import LocationMatcher, split_locations
from matching.matching_service import skill_names
from matching.skill_matcher import SkillMatcher
from utils import parse_json_field

DEFAULT_JOB_WEIGHTS = {
    'skills': 0.5,
    'location': 0.2,
    'experience': 0.15,
    'education': 0.1,
    'work_model': 0.05,
}

EDUCATION_LEVELS = ['keine', 'ausbildung', 'bachelor', 'master', 'doktor', 'professor']

EDUCATION_LEVEL_KEYWORDS = {
    'professor': ['professor', 'prof.', 'lehrstuhl', 'chair'],
    'doktor': ['doktor', 'doctor', 'phd', 'dr.', 'promotion'],
    'master': ['master', 'magister', 'graduate', 'm.sc', 'm.a', 'diplom', 'diploma'],
    'bachelor': ['bachelor', 'bakkalaureus', 'undergraduate', 'b.sc', 'b.a'],
    'ausbildung': ['ausbildung', 'berufsausbildung', 'apprenticeship', 'vocational'],
}

WORK_MODEL_KEYWORDS = {
    'vollzeit': ['vollzeit', 'full-time', 'fulltime', 'full time'],
    'teilzeit': ['teilzeit', 'part-time', 'parttime', 'part time'],
    'projekt': ['projekt', 'project', 'befristet', 'temporary', 'freiberuflich', 'freelance'],
    'praktikum': ['praktikum', 'internship', 'werkstudent', 'student'],
    'ausbildung': ['ausbildung', 'apprenticeship', 'trainee', 'duales-studium'],
    'flexibel': ['flexibel', 'flexible', 'remote', 'homeoffice', 'home-office', 'home office'],
}

# (candidate model, job model) pairs that fit halfway
HALF_FITTING_WORK_MODELS = {('teilzeit', 'vollzeit'), ('vollzeit', 'teilzeit'), ('projekt', 'teilzeit')}

YEARS_PATTERN = re.compile(r'(\d+(?:[.,]\d+)?)\s*(?:jahre|jahr|years|year)', re.IGNORECASE)
REQUIRED_YEARS_PATTERN = re.compile(
    r'(\d+)\s*(?:jahre|jahr|years|year)\s*(?:erfahrung|experience)', re.IGNORECASE)


def _contains_keyword(text: str, keyword: str) -> bool:
    return re.search(r'(?<!\w)' + re.escape(keyword) + r'(?!\w)', text) is not None


class JobMatcher:
    """Scores a candidate, application or talent pool record against a job.

    Entities are plain dicts. Candidate side reads ``skills``, ``location`` or
    ``applicant_location``, ``experience``, ``education`` and
    ``preferred_work_model``; job side reads ``skills``, ``location``,
    ``remote_work``, ``experience_years``, ``education_required``,
    ``work_model`` and ``description``.
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        weights = {**DEFAULT_JOB_WEIGHTS, **(weights or {})}
        total = sum(weights.values())
        if total:
            weights = {key: value / total for key, value in weights.items()}
        self.weights = weights
        self.skill_matcher = SkillMatcher()
        self.location_matcher = LocationMatcher()

    def calculate_match(self, candidate: Dict, job: Dict) -> Dict:
        skills = self.skill_score(candidate, job)
        location = self.location_score(candidate, job)
        experience = self.experience_score(candidate, job)
        education = self.education_score(candidate, job)
        work_model = self.work_model_score(candidate, job)

        overall = (
            skills['score'] * self.weights['skills'] +
            location['score'] * self.weights['location'] +
            experience['score'] * self.weights['experience'] +
            education['score'] * self.weights['education'] +
            work_model['score'] * self.weights['work_model']
        )

        return {
            'overall_score': round(overall, 2),
            'category_scores': {
                'skills': skills['score'],
                'location': location['score'],
                'experience': experience['score'],
                'education': education['score'],
                'work_model': work_model['score'],
            },
            'skill_matches': skills,
            'location_match': location,
            'experience_match': experience,
            'education_match': education,
            'work_model_match': work_model,
        }

    def skill_score(self, candidate: Dict, job: Dict) -> Dict:
        candidate_skills = skill_names(candidate.get('skills'))
        job_skills = skill_names(job.get('skills'))

        categories = self.skill_matcher.categorize_skills(candidate_skills, job_skills)
        return {
            'score': self.skill_matcher.calculate_skill_match_score(candidate_skills, job_skills),
            'matched_skills': categories['matched'],
            'partially_matched_skills': categories['partial'],
            'missing_skills': categories['missing'],
        }

    def location_score(self, candidate: Dict, job: Dict) -> Dict:
        candidate_location = candidate.get('location') or candidate.get('applicant_location') or ''
        job_location = job.get('location') or ''

        score = self.location_matcher.calculate_location_match_score(
            candidate_location, job_location, bool(job.get('remote_work'))
        )

        job_locations = [loc.lower() for loc in split_locations(job_location)]
        matched = [
            loc for loc in split_locations(candidate_location)
            if any(job_loc in loc.lower() or loc.lower() in job_loc for job_loc in job_locations)
        ]
        return {'score': score, 'matched_locations': matched}

    def experience_score(self, candidate: Dict, job: Dict) -> Dict:
        actual = self.candidate_experience_years(candidate.get('experience'))
        required = self.required_experience_years(job)

        if required == 0 or actual >= required:
            score = 100
        else:
            score = actual / required * 100

        return {'score': score, 'required_years': required, 'actual_years': actual}

    def education_score(self, candidate: Dict, job: Dict) -> Dict:
        actual = self.education_level(candidate.get('education'))
        required = self.required_education_level(job)

        actual_index = EDUCATION_LEVELS.index(actual)
        required_index = EDUCATION_LEVELS.index(required)

        if required_index <= 0 or actual_index >= required_index:
            score = 100
        else:
            score = actual_index / required_index * 100

        return {'score': score, 'required_level': required, 'actual_level': actual}

    def work_model_score(self, candidate: Dict, job: Dict) -> Dict:
        actual = self.work_model(candidate)
        required = self.work_model(job)

        if actual == required or actual == 'flexibel':
            score = 100
        elif (actual, required) in HALF_FITTING_WORK_MODELS:
            score = 50
        else:
            score = 0

        return {'score': score, 'required_model': required, 'actual_model': actual}

    @staticmethod
    def candidate_experience_years(experience: Any) -> float:
        """Sum of per-entry years or durations, falling back to 'N years' in text"""
        experience = parse_json_field(experience, [])

        if isinstance(experience, str):
            match = YEARS_PATTERN.search(experience)
            return float(match.group(1).replace(',', '.')) if match else 0

        if isinstance(experience, dict):
            experience = [experience]

        total = 0.0
        for entry in experience or []:
            if isinstance(entry, dict):
                years = entry.get('years') or entry.get('duration')
                if years is None:
                    match = YEARS_PATTERN.search(str(entry.get('period') or ''))
                    years = match.group(1) if match else 0
                try:
                    total += float(str(years).replace(',', '.'))
                except ValueError:
                    match = YEARS_PATTERN.search(str(years))
                    total += float(match.group(1).replace(',', '.')) if match else 0
            elif isinstance(entry, (int, float)):
                total += entry
        return total

    @staticmethod
    def required_experience_years(job: Dict) -> float:
        if job.get('experience_years'):
            return float(job['experience_years'])

        match = REQUIRED_YEARS_PATTERN.search(job.get('description') or '')
        return int(match.group(1)) if match else 0

    @staticmethod
    def _level_from_text(text: str) -> Optional[str]:
        for level, keywords in EDUCATION_LEVEL_KEYWORDS.items():
            if any(_contains_keyword(text, keyword) for keyword in keywords):
                return level
        return None

    def education_level(self, education: Any) -> str:
        education = parse_json_field(education, None)
        if not education:
            return 'keine'

        if isinstance(education, str):
            text = education.lower()
        elif isinstance(education, list):
            text = ' '.join(
                str(e).lower() if not isinstance(e, dict) else str(e.get('degree') or 'keine').lower()
                for e in education
            )
        elif isinstance(education, dict):
            text = str(education.get('degree') or '').lower()
        else:
            return 'keine'

        return self._level_from_text(text) or 'keine'

    def required_education_level(self, job: Dict) -> str:
        if job.get('education_required'):
            level = self._level_from_text(str(job['education_required']).lower())
            if level:
                return level

        if job.get('description'):
            level = self._level_from_text(str(job['description']).lower())
            if level:
                return level

        return 'keine'

    @staticmethod
    def work_model(entity: Dict) -> str:
        text = (entity.get('preferred_work_model') or entity.get('work_model') or
                entity.get('description') or '')
        text = str(text).lower()

        for model, keywords in WORK_MODEL_KEYWORDS.items():
            if any(keyword in text for keyword in keywords):
                return model
        return 'vollzeit'


def summarize_match(match: Dict) -> Dict:
    """Flatten a JobMatcher result into the JSON stored with a match row"""
    return {
        'overall_score': match['overall_score'],
        'category_scores': match['category_scores'],
        'matched_skills': match['skill_matches']['matched_skills'],
        'partially_matched_skills': match['skill_matches']['partially_matched_skills'],
        'missing_skills': match['skill_matches']['missing_skills'],
        'location_matches': match['location_match']['matched_locations'],
        'experience_details': {
            'required_years': match['experience_match']['required_years'],
            'actual_years': match['experience_match']['actual_years'],
        },
        'education_details': {
            'required_level': match['education_match']['required_level'],
            'actual_level': match['education_match']['actual_level'],
        },
        'work_model_details': {
            'required_model': match['work_model_match']['required_model'],
            'actual_model': match['work_model_match']['actual_model'],
        },
    }
