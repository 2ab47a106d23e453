import re
import logging
from typing import Any, Dict, List, Optional

from utils import parse_json_field, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = {
    'skills': 0.4,
    'experience': 0.2,
    'location': 0.15,
    'education': 0.15,
    'salary': 0.1,
}

DEFAULT_OPTIONS = {
    'fuzzy_skill_matching': True,
    'location_radius': 50,  # km, reserved for geo lookups
    'minimum_score': 60,
}

TECH_KEYWORDS = [
    'javascript', 'typescript', 'react', 'angular', 'vue', 'node', 'express',
    'html', 'css', 'sass', 'less', 'php', 'laravel', 'python', 'django', 'flask',
    'java', 'spring', 'c#', '.net', 'ruby', 'rails', 'go', 'rust', 'kotlin',
    'swift', 'objective-c', 'sql', 'mysql', 'postgresql', 'mongodb', 'redis',
    'aws', 'azure', 'gcp', 'docker', 'kubernetes', 'jenkins', 'git', 'jira',
    'agile', 'scrum', 'kanban', 'rest', 'graphql', 'oauth', 'jwt', 'microservices',
    'sap', 'erp', 'crm', 'excel', 'powerpoint', 'word', 'photoshop', 'illustrator',
    'figma', 'sketch', 'adobe xd', 'indesign', 'after effects',
]

SKILL_SYNONYMS = {
    'javascript': ['js', 'ecmascript', 'es6', 'es2015', 'es2016', 'es2017', 'es2018', 'es2019', 'es2020'],
    'typescript': ['ts'],
    'react': ['reactjs', 'react.js'],
    'node': ['nodejs', 'node.js'],
    'vue': ['vuejs', 'vue.js'],
    'angular': ['angularjs', 'angular.js', 'ng'],
    'python': ['py'],
    'java': ['jvm'],
    'c#': ['csharp', 'c sharp'],
    '.net': ['dotnet', 'dot net'],
    'php': ['php7', 'php8'],
    'sql': ['mysql', 'postgresql', 'oracle', 'sql server', 'tsql'],
    'nosql': ['mongodb', 'couchdb', 'redis', 'cassandra'],
    'aws': ['amazon web services'],
    'azure': ['microsoft azure'],
    'gcp': ['google cloud', 'google cloud platform'],
    'docker': ['container', 'containerization'],
    'kubernetes': ['k8s', 'container orchestration'],
}

EDUCATION_KEYWORDS = [
    'bachelor', 'master', 'diplom', 'promotion', 'doktor', 'abitur',
    'fachabitur', 'ausbildung', 'studium', 'universität', 'hochschule',
    'fachhochschule', 'berufsausbildung', 'realschule', 'hauptschule',
]

# Lowest to highest
EDUCATION_LEVELS = [
    ['hauptschule', 'hauptschulabschluss'],
    ['realschule', 'mittlere reife', 'realschulabschluss'],
    ['fachabitur', 'fachhochschulreife'],
    ['abitur', 'allgemeine hochschulreife'],
    ['ausbildung', 'berufsausbildung', 'lehre'],
    ['bachelor', 'b.a.', 'b.sc.', 'b.eng.'],
    ['master', 'm.a.', 'm.sc.', 'm.eng.', 'diplom', 'magister'],
    ['promotion', 'doktor', 'phd', 'dr.'],
]

REMOTE_KEYWORDS = [
    'remote', 'homeoffice', 'home office', 'remote-arbeit', 'remote arbeit',
    'telearbeit', 'mobiles arbeiten', 'flexibel', 'standortunabhängig', 'ortsunabhängig',
    'virtuell', 'aus der ferne', 'von zuhause', 'heimarbeit', 'dezentral',
]

HYBRID_KEYWORDS = ['hybrid', 'teilweise vor ort', 'teilweise remote', 'hybrid-modell']

GERMAN_CITIES = [
    'berlin', 'hamburg', 'münchen', 'köln', 'frankfurt', 'stuttgart', 'düsseldorf',
    'leipzig', 'dortmund', 'essen', 'bremen', 'dresden', 'hannover', 'nürnberg',
]

GERMAN_REGIONS = {
    'bayern': ['münchen', 'nürnberg', 'augsburg'],
    'berlin': ['berlin'],
    'hamburg': ['hamburg'],
    'nrw': ['köln', 'düsseldorf', 'dortmund', 'essen'],
    'sachsen': ['leipzig', 'dresden', 'chemnitz'],
    'niedersachsen': ['hannover', 'braunschweig', 'oldenburg'],
}

POSITION_BASE_SALARIES = {
    'developer': 65000,
    'senior': 85000,
    'junior': 45000,
    'lead': 95000,
    'manager': 90000,
    'director': 120000,
    'cto': 150000,
    'ceo': 200000,
    'frontend': 60000,
    'backend': 65000,
    'fullstack': 70000,
    'devops': 75000,
    'qa': 55000,
    'tester': 50000,
    'designer': 55000,
    'product': 70000,
}

PREMIUM_SKILLS = ['react', 'angular', 'vue', 'node', 'typescript', 'python', 'java', 'aws', 'azure', 'kubernetes']

EXPERIENCE_PATTERN = re.compile(r'(\d+)[-\s]?(\d+)?[\s-]*(jahr|jahre|years|year)', re.IGNORECASE)


def _keyword_pattern(keyword: str):
    return re.compile(r'(?<!\w)' + re.escape(keyword) + r'(?!\w)')


_TECH_PATTERNS = [(keyword, _keyword_pattern(keyword)) for keyword in TECH_KEYWORDS]


def skill_names(skills: Any) -> List[str]:
    """Flatten a skills field (list of strings or {name} dicts, or JSON) to names"""
    skills = parse_json_field(skills, [])

    if isinstance(skills, str):
        return [s.strip() for s in skills.split(',') if s.strip()]

    if isinstance(skills, dict):
        skills = [skills]

    names = []
    for skill in skills or []:
        if isinstance(skill, dict):
            name = skill.get('name')
            if name:
                names.append(str(name))
        elif skill:
            names.append(str(skill))
    return names


def levenshtein_similarity(first: str, second: str) -> float:
    """1 - edit distance / longest length; short words must match exactly"""
    a = first.lower()
    b = second.lower()

    if len(a) < 3 or len(b) < 3:
        return 1.0 if a == b else 0.0

    previous = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        current = [i] + [0] * len(b)
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            current[j] = min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
        previous = current

    return 1 - previous[len(b)] / max(len(a), len(b))


def string_similarity(first: str, second: str) -> float:
    a = first.lower().strip()
    b = second.lower().strip()

    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.9

    a_words = a.split()
    b_words = b.split()
    if len(a_words) > 1 or len(b_words) > 1:
        total_words = max(len(a_words), len(b_words))
        matched_words = sum(
            1 for a_word in a_words
            if any(levenshtein_similarity(a_word, b_word) > 0.8 for b_word in b_words)
        )
        word_similarity = matched_words / total_words
        if word_similarity > 0.5:
            return word_similarity

    return levenshtein_similarity(a, b)


def extract_experience_years(text: str) -> int:
    """'5 Jahre' -> 5, '3-5 years' -> 4 (floor of the average)"""
    if not text:
        return 0

    match = EXPERIENCE_PATTERN.search(text)
    if not match:
        return 0

    if match.group(2):
        return (int(match.group(1)) + int(match.group(2))) // 2
    return int(match.group(1))


def parse_salary_range(salary_range: Optional[str]) -> Dict[str, float]:
    """Parse '50000-70000' into min/max; a single number n yields n..1.2n"""
    if not salary_range:
        return {}

    numbers = [int(n) for n in re.findall(r'\d+', re.sub(r'[^\d.\-]', ' ', str(salary_range)).replace('.', ''))]
    if not numbers:
        return {}

    if len(numbers) == 1:
        return {'min': numbers[0], 'max': numbers[0] * 1.2}

    numbers.sort()
    return {'min': numbers[0], 'max': numbers[-1]}


class MatchingService:
    """Scores a job against a candidate on skills, experience, location,
    education and salary and returns the weighted total with a breakdown."""

    def calculate_match(self, job: Dict, candidate: Dict, weights: Optional[Dict] = None,
                        options: Optional[Dict] = None) -> Dict:
        weights = {**DEFAULT_WEIGHTS, **(weights or {})}
        options = {**DEFAULT_OPTIONS, **(options or {})}

        requirements_text = job.get('requirements') or ''

        required_skills = self.extract_skills_from_requirements(requirements_text)
        for skill in skill_names(job.get('required_skills')):
            if skill.lower() not in required_skills:
                required_skills.append(skill.lower())

        candidate_skills = skill_names(candidate.get('skills'))
        skill_matches = self.match_skills(required_skills, candidate_skills, options['fuzzy_skill_matching'])

        if required_skills:
            skill_score = (
                (len(skill_matches['matched']) + len(skill_matches['partial_matches']) * 0.5)
                / len(required_skills) * 100
            )
        else:
            skill_score = 50

        required_experience = extract_experience_years(requirements_text)
        candidate_experience = extract_experience_years(self._experience_text(candidate.get('experience')))
        experience_score = self.match_experience(required_experience, candidate_experience)

        location_score = self.match_location(job.get('location') or '', candidate.get('location') or '')

        required_education = self.extract_education_requirements(requirements_text)
        education_score = self.match_education(required_education, self._education_text(candidate))

        salary_range = parse_salary_range(job.get('salary_range'))
        if not salary_range and (job.get('salary_min') or job.get('salary_max')):
            salary_range = parse_salary_range(
                '-'.join(str(v) for v in (job.get('salary_min'), job.get('salary_max')) if v)
            )
        salary_expectation = self.extract_salary_expectation(candidate) or 0
        salary_score = self.match_salary(salary_range, salary_expectation)

        total_score = round_half_up(
            skill_score * weights['skills'] +
            experience_score * weights['experience'] +
            location_score * weights['location'] +
            education_score * weights['education'] +
            salary_score * weights['salary']
        )

        return {
            'score': total_score,
            'matched_skills': skill_matches['matched'],
            'missing_skills': skill_matches['missing'],
            'partial_match_skills': skill_matches['partial_matches'],
            'location_match': location_score >= 70,
            'salary_match': salary_score >= 70,
            'experience_match': experience_score >= 70,
            'details': {
                'skill_score': skill_score,
                'experience_score': experience_score,
                'location_score': location_score,
                'salary_score': salary_score,
                'education_score': education_score,
            }
        }

    def extract_skills_from_requirements(self, requirements: str) -> List[str]:
        if not requirements:
            return []

        text = requirements.lower()
        return [keyword for keyword, pattern in _TECH_PATTERNS if pattern.search(text)]

    def extract_education_requirements(self, text: str) -> str:
        if not text:
            return ''

        text = text.lower()
        for keyword in EDUCATION_KEYWORDS:
            if keyword in text:
                return keyword
        return ''

    def _experience_text(self, experience: Any) -> str:
        experience = parse_json_field(experience, [])

        if isinstance(experience, str):
            return experience

        if isinstance(experience, dict):
            experience = [experience]

        parts = []
        for entry in experience or []:
            if isinstance(entry, dict):
                fields = [entry.get(key) for key in ('position', 'company', 'period', 'description')]
                if entry.get('years'):
                    fields.append(f"{entry['years']} years")
                parts.append(' '.join(str(f) for f in fields if f))
            elif entry:
                parts.append(str(entry))
        return ' '.join(parts)

    def _education_text(self, candidate: Dict) -> str:
        profile = parse_json_field(candidate.get('qualification_profile'), {}) or {}
        certificates = profile.get('certificates') if isinstance(profile, dict) else None
        if certificates:
            return ' '.join(str(c) for c in certificates)

        education = parse_json_field(candidate.get('education'), '')
        if isinstance(education, list):
            return ' '.join(
                str(e.get('degree', '')) if isinstance(e, dict) else str(e) for e in education
            ).strip()
        if isinstance(education, dict):
            return str(education.get('degree', ''))
        return str(education or '')

    def extract_salary_expectation(self, candidate: Dict) -> Optional[int]:
        """Use the stated expectation, otherwise estimate from position and skills"""
        if candidate.get('salary_expectation'):
            return int(candidate['salary_expectation'])

        salary = 60000
        position = (candidate.get('position') or '').lower()
        for key, value in POSITION_BASE_SALARIES.items():
            if key in position:
                salary = value
                break

        names = skill_names(candidate.get('skills'))
        if names:
            bonus = 0.0
            for name in names:
                if any(premium in name.lower() for premium in PREMIUM_SKILLS):
                    bonus += 0.05
            salary = salary * (1 + min(bonus, 0.3))

        return round_half_up(salary)

    def match_skills(self, required: List[str], candidate: List[str], fuzzy_matching: bool = True) -> Dict:
        matched = []
        missing = []
        partial_matches = []

        if not required:
            return {'matched': matched, 'missing': missing, 'partial_matches': partial_matches}

        if not candidate:
            return {'matched': matched, 'missing': list(required), 'partial_matches': partial_matches}

        def normalize(skill):
            skill = re.sub(r'[^\w\s\-\+\#\.]', '', skill.lower())
            return re.sub(r'\s+', ' ', skill).strip()

        required_normalized = [normalize(s) for s in required]
        candidate_normalized = [normalize(s) for s in candidate]

        for required_skill in required_normalized:
            if required_skill in candidate_normalized:
                matched.append(required_skill)
                continue

            if self._synonym_match(required_skill, candidate_normalized):
                matched.append(required_skill)
                continue

            if not fuzzy_matching:
                missing.append(required_skill)
                continue

            best = max(string_similarity(required_skill, skill) for skill in candidate_normalized)
            if best > 0.85:
                matched.append(required_skill)
            elif best > 0.7:
                partial_matches.append({'skill': required_skill, 'confidence': best})
            else:
                missing.append(required_skill)

        return {'matched': matched, 'missing': missing, 'partial_matches': partial_matches}

    def _synonym_match(self, required_skill: str, candidate_skills: List[str]) -> bool:
        for main_skill, synonyms in SKILL_SYNONYMS.items():
            if required_skill == main_skill and any(s in synonyms for s in candidate_skills):
                return True
            if required_skill in synonyms and (
                    main_skill in candidate_skills or any(s in synonyms for s in candidate_skills)):
                return True
        return False

    def match_experience(self, required: int, candidate: int) -> int:
        if required == 0 or candidate >= required:
            return 100

        for ratio, score in ((0.8, 90), (0.6, 75), (0.4, 50), (0.2, 30)):
            if candidate >= required * ratio:
                return score
        return 15

    def match_location(self, job_location: str, candidate_location: str) -> int:
        if not job_location or not candidate_location:
            return 30

        def normalize(location):
            return re.sub(r'[^\w\s\-/,äöüß]', '', location.lower()).strip()

        job_loc = normalize(job_location)
        candidate_loc = normalize(candidate_location)

        job_remote = any(k in job_loc for k in REMOTE_KEYWORDS)
        candidate_remote = any(k in candidate_loc for k in REMOTE_KEYWORDS)
        if job_remote and candidate_remote:
            return 100
        if job_remote:
            return 90

        if job_loc == candidate_loc:
            return 100

        def split(location):
            return [p.strip() for p in re.split(r'\s*[,/]\s*|\s+-\s+', location) if p.strip()]

        job_parts = split(job_loc)
        candidate_parts = split(candidate_loc)

        for job_part in job_parts:
            for candidate_part in candidate_parts:
                if (job_part == candidate_part
                        or (len(job_part) > 3 and job_part in candidate_part)
                        or (len(candidate_part) > 3 and candidate_part in job_part)):
                    return 95

        job_plz = self._extract_plz(job_parts)
        candidate_plz = self._extract_plz(candidate_parts)
        if job_plz and candidate_plz:
            if job_plz == candidate_plz:
                return 95
            if job_plz[:2] == candidate_plz[:2]:
                return 80

        job_city = next((p for p in job_parts if p in GERMAN_CITIES), None)
        candidate_city = next((p for p in candidate_parts if p in GERMAN_CITIES), None)
        if job_city and candidate_city and job_city == candidate_city:
            return 90

        job_region = self._find_region(job_city)
        candidate_region = self._find_region(candidate_city)
        if job_region and job_region == candidate_region:
            return 75

        if any(k in job_loc for k in HYBRID_KEYWORDS):
            return 50

        return 30

    @staticmethod
    def _extract_plz(parts: List[str]) -> Optional[str]:
        for part in parts:
            if re.fullmatch(r'\d{5}', part):
                return part
        return None

    @staticmethod
    def _find_region(city: Optional[str]) -> Optional[str]:
        if not city:
            return None
        for region, cities in GERMAN_REGIONS.items():
            if city in cities:
                return region
        return None

    def match_education(self, required: str, candidate: str) -> int:
        if not required or not candidate:
            return 50

        required = required.lower().strip()
        candidate = candidate.lower().strip()

        if required == candidate:
            return 100

        required_level = self._education_level(required)
        candidate_level = self._education_level(candidate)

        if required_level == -1 or candidate_level == -1:
            if candidate in required or required in candidate:
                return 80
            return 50

        if candidate_level >= required_level:
            return 100

        difference = required_level - candidate_level
        if difference == 1:
            return 70
        if difference == 2:
            return 50
        return max(30, 80 - difference * 15)

    @staticmethod
    def _education_level(education: str) -> int:
        for index, keywords in enumerate(EDUCATION_LEVELS):
            if any(k in education for k in keywords):
                return index
        return -1

    def match_salary(self, job_range: Dict, expectation: float) -> int:
        minimum = job_range.get('min')
        maximum = job_range.get('max')
        if not minimum or not maximum:
            return 100

        if minimum <= expectation <= maximum:
            return 100

        for tolerance, score in ((0.1, 85), (0.2, 70), (0.3, 50)):
            if minimum * (1 - tolerance) <= expectation <= maximum * (1 + tolerance):
                return score

        if expectation < minimum * 0.7:
            return 30

        if expectation > maximum * 1.3:
            factor = expectation / maximum
            if factor > 2:
                return 0
            if factor > 1.5:
                return 15
            return 25

        return 40


matching_service = MatchingService()
