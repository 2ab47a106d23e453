"""Candidate / job / requirement scoring"""

from matching.matching_service import MatchingService, matching_service
from matching.skill_matcher import SkillMatcher
from matching.location_matcher import LocationMatcher
from matching.job_matcher import JobMatcher

__all__ = ['MatchingService', 'matching_service', 'SkillMatcher', 'LocationMatcher', 'JobMatcher']
