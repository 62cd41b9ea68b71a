"""
Pytest configuration and shared fixtures.
"""

from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest

from src.agents.matching_agent import SkillMatcher
from src.models.match_result import SemanticAnalysis
from src.models.project import MatchingProfile, ProjectAnalysis
from src.services.llm_service import LLMService, LLMUnavailableError


class StubLLMService:
    """Collaboratore LLM deterministico, senza rete."""

    def __init__(
        self,
        semantic: Optional[SemanticAnalysis] = None,
        error: Optional[Exception] = None,
        skills: Optional[List[str]] = None,
        project_analysis: Optional[ProjectAnalysis] = None,
        matching_profile: Optional[MatchingProfile] = None,
    ):
        self.semantic = semantic or SemanticAnalysis(status="ok", score=80, analysis="Good fit")
        self.error = error
        self.skills = skills or []
        self.project_analysis = project_analysis or ProjectAnalysis()
        self.matching_profile = matching_profile or MatchingProfile()
        self.calls: List[Dict] = []

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def analyze_skill_match(self, project_skills, user_skills, project_description):
        self.calls.append({
            "project_skills": project_skills,
            "user_skills": user_skills,
            "project_description": project_description,
        })
        self._maybe_fail()
        return self.semantic

    def extract_skills(self, text):
        self._maybe_fail()
        return list(self.skills)

    def analyze_project(self, description):
        self._maybe_fail()
        return self.project_analysis

    def find_matching_profile(self, skills):
        self._maybe_fail()
        return self.matching_profile


class CannedLLMService(LLMService):
    """LLMService reale con risposte predefinite al posto del modello."""

    def __init__(self, responses: List, available: bool = True, **kwargs):
        self._responses = list(responses)
        self._available = available
        self.prompts: List[str] = []
        super().__init__(verbose=False, **kwargs)

    def _check_lmstudio(self) -> None:
        self.is_available = self._available

    def _check_ollama(self) -> None:
        self.is_available = self._available

    def generate(self, prompt, system_prompt=None, temperature=None):
        if not self.is_available:
            return super().generate(prompt, system_prompt, temperature)
        self.prompts.append(prompt)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def stub_llm():
    """Factory per StubLLMService."""
    return StubLLMService


@pytest.fixture
def canned_llm():
    """Factory per CannedLLMService."""
    return CannedLLMService


@pytest.fixture
def good_fit_llm() -> StubLLMService:
    return StubLLMService(semantic=SemanticAnalysis(status="ok", score=80, analysis="Good fit"))


@pytest.fixture
def failing_llm() -> StubLLMService:
    return StubLLMService(error=LLMUnavailableError("timeout"))


@pytest.fixture
def matcher(good_fit_llm) -> SkillMatcher:
    return SkillMatcher(llm_service=good_fit_llm)


@pytest.fixture
def fallback_matcher(failing_llm) -> SkillMatcher:
    return SkillMatcher(llm_service=failing_llm)


@pytest.fixture
def fake_openai_client():
    """Client compatibile OpenAI che restituisce un testo fisso."""
    def _make(content: str):
        message = SimpleNamespace(content=content)
        response = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        completions = SimpleNamespace(create=lambda **kwargs: response)
        return SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return _make
