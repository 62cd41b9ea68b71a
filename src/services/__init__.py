# services package
"""Services for the skill matching system (tools used by agents)."""

from src.services.llm_service import LLMService, LLMUnavailableError
from src.services.skill_taxonomy import SkillTaxonomy, default_taxonomy, normalize_skill

__all__ = [
    "LLMService",
    "LLMUnavailableError",
    "SkillTaxonomy",
    "default_taxonomy",
    "normalize_skill",
]
