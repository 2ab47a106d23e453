import re
from typing import List, Optional, Union

GERMANY_REGIONS = {
    'Berlin/Brandenburg': ['berlin', 'potsdam', 'brandenburg', 'cottbus', 'frankfurt (oder)', 'oranienburg'],
    'Hamburg/Schleswig-Holstein': ['hamburg', 'kiel', 'lübeck', 'flensburg', 'neumünster', 'norderstedt',
                                   'pinneberg'],
    'Niedersachsen/Bremen': ['hannover', 'bremen', 'oldenburg', 'osnabrück', 'wolfsburg', 'braunschweig',
                             'göttingen'],
    'Nordrhein-Westfalen': ['köln', 'düsseldorf', 'dortmund', 'essen', 'duisburg', 'bochum', 'wuppertal',
                            'bonn', 'münster', 'aachen'],
    'Rheinland-Pfalz/Saarland': ['mainz', 'trier', 'koblenz', 'kaiserslautern', 'ludwigshafen', 'saarbrücken'],
    'Hessen': ['frankfurt', 'wiesbaden', 'kassel', 'darmstadt', 'offenbach', 'gießen', 'fulda'],
    'Baden-Württemberg': ['stuttgart', 'karlsruhe', 'mannheim', 'freiburg', 'heidelberg', 'ulm', 'heilbronn',
                          'pforzheim'],
    'Bayern': ['münchen', 'nürnberg', 'augsburg', 'regensburg', 'würzburg', 'ingolstadt', 'erlangen', 'fürth'],
    'Sachsen': ['dresden', 'leipzig', 'chemnitz', 'zwickau', 'plauen', 'görlitz'],
    'Thüringen': ['erfurt', 'jena', 'gera', 'weimar', 'eisenach', 'gotha', 'suhl'],
    'Sachsen-Anhalt': ['magdeburg', 'halle', 'dessau', 'wittenberg', 'stendal', 'halberstadt'],
    'Mecklenburg-Vorpommern': ['rostock', 'schwerin', 'neubrandenburg', 'stralsund', 'greifswald', 'wismar'],
}

REMOTE_WORK_KEYWORDS = [
    'remote', 'homeoffice', 'home office', 'remote work', 'remote-work',
    'telearbeit', 'home-office', 'fernarbeit', 'mobiles arbeiten',
]


def split_locations(location: Union[str, List[str], None]) -> List[str]:
    if not location:
        return []
    if isinstance(location, str):
        location = location.split(',')
    return [loc.strip() for loc in location if loc and loc.strip()]


class LocationMatcher:

    def calculate_location_match_score(self, candidate_location, job_location,
                                       remote_work_possible: bool = False) -> float:
        candidate_locations = [loc.lower() for loc in split_locations(candidate_location)]
        job_locations = [loc.lower() for loc in split_locations(job_location)]

        if not candidate_locations or not job_locations:
            return 0

        remote_score = self.remote_work_score(candidate_locations, job_locations, remote_work_possible)
        if remote_score > 0:
            return remote_score

        return max(
            self.single_location_score(candidate_loc, job_loc)
            for candidate_loc in candidate_locations
            for job_loc in job_locations
        )

    @staticmethod
    def remote_work_score(candidate_locations: List[str], job_locations: List[str],
                          remote_work_possible: bool) -> float:
        if not remote_work_possible:
            return 0

        candidate_remote = any(k in loc for loc in candidate_locations for k in REMOTE_WORK_KEYWORDS)
        job_remote = any(k in loc for loc in job_locations for k in REMOTE_WORK_KEYWORDS)

        if candidate_remote and job_remote:
            return 100
        if job_remote:
            return 80
        return 0

    def single_location_score(self, first: str, second: str) -> float:
        if first == second:
            return 100

        zip_first = self.extract_zip_code(first)
        zip_second = self.extract_zip_code(second)
        if zip_first and zip_second:
            if zip_first == zip_second:
                return 100
            if zip_first[:2] == zip_second[:2]:
                return 80

        if first in second or second in first:
            return 90

        if self.in_same_region(first, second):
            return 70

        return 0

    @staticmethod
    def in_same_region(first: str, second: str) -> bool:
        for cities in GERMANY_REGIONS.values():
            if any(c in first for c in cities) and any(c in second for c in cities):
                return True
        return False

    @staticmethod
    def extract_zip_code(location: str) -> Optional[str]:
        match = re.search(r'\b\d{5}\b', location)
        return match.group(0) if match else None
