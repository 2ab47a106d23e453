from typing import Dict, List, Optional

DEFAULT_SKILL_WEIGHTS = {
    'exact': 1.0,
    'partial': 0.7,
    'stem': 0.8,
    'synonym': 0.9,
    'category': 0.6,
}

SKILL_CATEGORIES = {
    'Frontend': ['react', 'vue', 'angular', 'javascript', 'typescript', 'html', 'css', 'sass', 'less',
                 'jquery', 'bootstrap'],
    'Backend': ['node', 'express', 'django', 'flask', 'spring', 'java', 'python', 'ruby', 'php', 'go',
                'rust', 'c#', '.net'],
    'Datenbanken': ['sql', 'mysql', 'postgresql', 'mongodb', 'firebase', 'oracle', 'cassandra', 'redis',
                    'dynamodb'],
    'DevOps': ['docker', 'kubernetes', 'aws', 'azure', 'gcp', 'terraform', 'jenkins', 'gitlab', 'github',
               'ci/cd'],
    'Mobile': ['android', 'ios', 'swift', 'kotlin', 'react native', 'flutter', 'xamarin'],
    'Design': ['ui', 'ux', 'figma', 'sketch', 'adobe', 'photoshop', 'illustrator', 'indesign'],
    'Projektmanagement': ['scrum', 'agile', 'kanban', 'jira', 'confluence', 'trello', 'asana', 'pmp'],
    'Soft Skills': ['kommunikation', 'teamarbeit', 'führung', 'problemlösung', 'zeitmanagement',
                    'kreativität'],
}

SKILL_SYNONYM_PAIRS = [
    ('javascript', 'js'),
    ('typescript', 'ts'),
    ('react', 'reactjs'),
    ('vue', 'vuejs'),
    ('node', 'nodejs'),
    ('angular', 'angularjs'),
    ('css', 'stylesheet'),
    ('html', 'markup'),
    ('java', 'jvm'),
    ('python', 'py'),
    ('c#', 'csharp'),
    ('c++', 'cpp'),
    ('postgresql', 'postgres'),
    ('microsoft sql server', 'mssql'),
    ('git', 'version control'),
    ('docker', 'container'),
    ('kubernetes', 'k8s'),
    ('aws', 'amazon web services'),
    ('azure', 'microsoft azure'),
    ('gcp', 'google cloud'),
    ('ui', 'user interface'),
    ('ux', 'user experience'),
    ('devops', 'development operations'),
]

STEM_MIN_LENGTH = 4


class SkillMatcher:
    """Weighted comparison of two skill lists"""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = {**DEFAULT_SKILL_WEIGHTS, **(weights or {})}

    def calculate_skill_match_score(self, candidate_skills: List[str], job_skills: List[str]) -> float:
        job_skills = self.normalize_skills(job_skills)
        candidate_skills = self.normalize_skills(candidate_skills)
        if not job_skills or not candidate_skills:
            return 0

        total = 0.0
        possible = 0.0
        for job_skill in job_skills:
            possible += self.weights['exact']
            total += self.best_skill_match(job_skill, candidate_skills)

        return round(total / possible * 100, 2)

    def best_skill_match(self, skill: str, skill_list: List[str]) -> float:
        best = 0.0
        for other in skill_list:
            best = max(best, self.single_skill_score(skill, other))
            if best >= self.weights['exact']:
                return self.weights['exact']
        return best

    def single_skill_score(self, first: str, second: str) -> float:
        """Best applicable weight for a pair of normalized skills"""
        if first == second:
            return self.weights['exact']

        scores = [0.0]
        if first in second or second in first:
            scores.append(self.weights['partial'])
        if self.are_synonyms(first, second):
            scores.append(self.weights['synonym'])
        if self.have_common_stem(first, second):
            scores.append(self.weights['stem'])
        if self.in_same_category(first, second):
            scores.append(self.weights['category'])
        return max(scores)

    @staticmethod
    def are_synonyms(first: str, second: str) -> bool:
        return (first, second) in SKILL_SYNONYM_PAIRS or (second, first) in SKILL_SYNONYM_PAIRS

    @staticmethod
    def have_common_stem(first: str, second: str) -> bool:
        if len(first) < STEM_MIN_LENGTH or len(second) < STEM_MIN_LENGTH:
            return False
        shorter, longer = sorted((first, second), key=len)
        return longer.startswith(shorter)

    @staticmethod
    def in_same_category(first: str, second: str) -> bool:
        return any(first in skills and second in skills for skills in SKILL_CATEGORIES.values())

    @staticmethod
    def normalize_skills(skills: List[str]) -> List[str]:
        return [s.lower().strip() for s in skills or [] if s and s.strip()]

    def categorize_skills(self, candidate_skills: List[str], job_skills: List[str]) -> Dict[str, List[str]]:
        """Split job skills into matched (exact), partial (substring) and missing"""
        candidate_lower = [s.lower() for s in candidate_skills]
        result = {'matched': [], 'partial': [], 'missing': []}

        for job_skill in job_skills:
            lower = job_skill.lower()
            if lower in candidate_lower:
                result['matched'].append(job_skill)
            elif any(lower in c or c in lower for c in candidate_lower if c):
                result['partial'].append(job_skill)
            else:
                result['missing'].append(job_skill)
        return result
