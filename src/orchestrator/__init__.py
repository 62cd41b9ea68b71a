# orchestrator package
"""Orchestrator for coordinating agents in the skill matching system."""

from src.orchestrator.matching_orchestrator import (
    MatchingOrchestrator,
    can_request_to_join,
    score_band,
    match_user_to_project
)

__all__ = [
    "MatchingOrchestrator",
    "can_request_to_join",
    "score_band",
    "match_user_to_project",
]
