# models package
"""Data models for the skill matching system."""

from src.models.weights import WeightConfig
from src.models.user import UserProfile
from src.models.project import ProjectRequirements, ProjectAnalysis, MatchingProfile
from src.models.match_result import (
    CollaboratorMatch,
    LocalScore,
    MatchDetails,
    MatchResult,
    SemanticAnalysis,
    SkillBreakdown,
)

__all__ = [
    "WeightConfig",
    "UserProfile",
    "ProjectRequirements",
    "ProjectAnalysis",
    "MatchingProfile",
    "CollaboratorMatch",
    "LocalScore",
    "MatchDetails",
    "MatchResult",
    "SemanticAnalysis",
    "SkillBreakdown",
]
