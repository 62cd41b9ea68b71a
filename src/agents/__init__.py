# agents package
"""Agents for the skill matching system."""

from src.agents.matching_agent import SkillMatcher
from src.agents.profile_agent import ProfileAgent
from src.agents.project_agent import ProjectAgent

__all__ = [
    "SkillMatcher",
    "ProfileAgent",
    "ProjectAgent",
]
