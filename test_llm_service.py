"""
Test LLMService (senza rete: risposte del modello predefinite)
"""

from types import SimpleNamespace

import pytest

from src.agents.matching_agent import SkillMatcher
from src.services.llm_service import LLMService, LLMUnavailableError


# ═══════════════════════════════════════════════════════════════════════════
# ESTRAZIONE JSON
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def service(canned_llm):
    return canned_llm([], provider="lmstudio")


def test_extract_json_direct(service):
    assert service._extract_json('{"score": 80}') == {"score": 80}


def test_extract_json_inside_text(service):
    text = 'Sure! Here is the result: {"score": 55, "analysis": "ok"} Hope it helps.'
    assert service._extract_json(text) == {"score": 55, "analysis": "ok"}


def test_extract_json_code_fence(service):
    text = '```json\n{"score": 90, "analysis": "great"}\n```'
    assert service._extract_json(text) == {"score": 90, "analysis": "great"}


def test_extract_json_brace_inside_string(service):
    text = 'Result: {"score": 80, "analysis": "use } wisely"} done'
    assert service._extract_json(text) == {"score": 80, "analysis": "use } wisely"}


def test_extract_json_skips_invalid_candidates(service):
    text = 'Note {not json} then {"score": 42}'
    assert service._extract_json(text) == {"score": 42}


@pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]", "{broken"])
def test_extract_json_returns_none(service, text):
    assert service._extract_json(text) is None


# ═══════════════════════════════════════════════════════════════════════════
# ANALISI SKILL MATCH
# ═══════════════════════════════════════════════════════════════════════════

def test_analyze_skill_match_ok(canned_llm):
    llm = canned_llm(['{"score": 80, "analysis": "Good fit"}'], provider="lmstudio")
    result = llm.analyze_skill_match(["React", "AWS"], ["React"], "Build a web app")

    assert result.status == "ok"
    assert result.score == 80
    assert result.analysis == "Good fit"
    assert "Required Skills: React, AWS" in llm.prompts[0]
    assert "User's Skills: React" in llm.prompts[0]


def test_analyze_skill_match_clamps_and_rounds(canned_llm):
    llm = canned_llm(['{"score": 150}', '{"score": "72.5", "analysis": "x"}', '{"score": -3}'], provider="lmstudio")

    assert llm.analyze_skill_match([], [], "").score == 100
    assert llm.analyze_skill_match([], [], "").score == 73
    assert llm.analyze_skill_match([], [], "").score == 0


def test_analyze_skill_match_parse_error_keeps_raw_text(canned_llm):
    llm = canned_llm(["I think this is a good match."], provider="lmstudio")
    result = llm.analyze_skill_match(["React"], ["React"], "")

    assert result.status == "parse_error"
    assert result.score == 0
    assert result.analysis == "I think this is a good match."


@pytest.mark.parametrize("payload", ['{"score": "high"}', '{"analysis": "no score"}', '{"score": true}'])
def test_analyze_skill_match_non_numeric_score(canned_llm, payload):
    llm = canned_llm([payload], provider="lmstudio")
    assert llm.analyze_skill_match([], [], "").status == "parse_error"


def test_analyze_skill_match_unavailable_provider(canned_llm):
    llm = canned_llm([], available=False, provider="ollama")
    result = llm.analyze_skill_match(["React"], ["React"], "")
    assert result.status == "unavailable"


def test_analyze_skill_match_network_error(canned_llm):
    llm = canned_llm([LLMUnavailableError("timed out")], provider="lmstudio")
    assert llm.analyze_skill_match(["React"], ["React"], "").status == "unavailable"


# ═══════════════════════════════════════════════════════════════════════════
# PROVIDER
# ═══════════════════════════════════════════════════════════════════════════

def test_unknown_provider_rejected():
    with pytest.raises(ValueError):
        LLMService(provider="foo", verbose=False)


def test_generate_unavailable_raises(canned_llm):
    llm = canned_llm([], available=False, provider="lmstudio")
    with pytest.raises(LLMUnavailableError):
        llm.extract_skills("Python developer")


def test_generate_uses_openai_compatible_client(monkeypatch, fake_openai_client):
    monkeypatch.setattr(LLMService, "_check_lmstudio", lambda self: setattr(self, "is_available", True))
    llm = LLMService(provider="lmstudio", lmstudio_model="test-model", verbose=False)
    llm._lmstudio_client = fake_openai_client('{"score": 64, "analysis": "fine"}')

    result = llm.analyze_skill_match(["SQL"], ["SQL"], "Reporting")
    assert result.status == "ok"
    assert result.score == 64
    assert llm.model == "test-model"


def test_generate_uses_ollama_client(monkeypatch):
    monkeypatch.setattr(LLMService, "_check_ollama", lambda self: setattr(self, "is_available", True))
    llm = LLMService(provider="ollama", model="llama3.2", verbose=False)

    captured = {}

    def chat(model, messages, options):
        captured.update(model=model, messages=messages, options=options)
        return SimpleNamespace(message=SimpleNamespace(content="Python\nDocker"))

    llm._ollama_client = SimpleNamespace(chat=chat)

    assert llm.extract_skills("CV") == ["Python", "Docker"]
    assert captured["model"] == "llama3.2"
    assert captured["options"]["temperature"] == 0.1


class _TimingOutOllamaClient:
    created = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        _TimingOutOllamaClient.created.append(kwargs)

    def list(self):
        return SimpleNamespace(models=[SimpleNamespace(model="llama3.2:latest")])

    def chat(self, **kwargs):
        raise TimeoutError("timed out")


class _TimingOutOpenAI:
    created = []

    def __init__(self, **kwargs):
        _TimingOutOpenAI.created.append(kwargs)
        self.models = SimpleNamespace(list=lambda: SimpleNamespace(data=[SimpleNamespace(id="test-model")]))
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        raise TimeoutError("timed out")


def test_ollama_client_receives_timeout(monkeypatch):
    _TimingOutOllamaClient.created = []
    monkeypatch.setattr("ollama.Client", _TimingOutOllamaClient)

    llm = LLMService(provider="ollama", model="llama3.2", timeout=12, ollama_host="http://ollama:11434", verbose=False)

    assert llm.is_available
    assert _TimingOutOllamaClient.created == [{"host": "http://ollama:11434", "timeout": 12}]


def test_openai_client_receives_timeout_without_retries(monkeypatch):
    _TimingOutOpenAI.created = []
    monkeypatch.setattr("openai.OpenAI", _TimingOutOpenAI)

    llm = LLMService(
        provider="lmstudio",
        lmstudio_model="test-model",
        lmstudio_base_url="http://lmstudio:1234/v1",
        lmstudio_api_key="key",
        timeout=7,
        verbose=False,
    )

    assert llm.is_available
    assert _TimingOutOpenAI.created == [{
        "base_url": "http://lmstudio:1234/v1",
        "api_key": "key",
        "timeout": 7,
        "max_retries": 0,
    }]


@pytest.mark.parametrize("provider", ["ollama", "lmstudio"])
def test_client_timeout_falls_back_to_base_score(monkeypatch, provider):
    monkeypatch.setattr("ollama.Client", _TimingOutOllamaClient)
    monkeypatch.setattr("openai.OpenAI", _TimingOutOpenAI)
    llm = LLMService(provider=provider, model="llama3.2", lmstudio_model="test-model", timeout=1, verbose=False)

    result = SkillMatcher(llm_service=llm).calculate_match(
        ["React", "TypeScript"], ["React", "Node.js", "AWS"], "Build a web app"
    )

    assert result.semantic_status == "unavailable"
    assert result.score == result.base_score == 67


def test_client_error_becomes_unavailable(monkeypatch):
    monkeypatch.setattr(LLMService, "_check_ollama", lambda self: setattr(self, "is_available", True))
    llm = LLMService(provider="ollama", verbose=False)

    def chat(**kwargs):
        raise ConnectionError("refused")

    llm._ollama_client = SimpleNamespace(chat=chat)

    with pytest.raises(LLMUnavailableError):
        llm.generate("hello")
    assert llm.analyze_skill_match([], [], "").status == "unavailable"


# ═══════════════════════════════════════════════════════════════════════════
# ESTRAZIONE SKILL / PROGETTO / PROFILO
# ═══════════════════════════════════════════════════════════════════════════

def test_extract_skills_strips_bullets(canned_llm):
    llm = canned_llm(["- Python\n* Docker\n1. React\n2) SQL\n\n  Figma  \n"], provider="lmstudio")
    assert llm.extract_skills("resume") == ["Python", "Docker", "React", "SQL", "Figma"]


def test_analyze_project(canned_llm):
    payload = (
        '{"skills": ["React", "AWS", null], "requirements": ["Ship MVP"], '
        '"summary": "A web app", "insights": ["Tight deadline"]}'
    )
    llm = canned_llm([payload], provider="lmstudio")
    analysis = llm.analyze_project("Build a web app")

    assert analysis.skills == ["React", "AWS"]
    assert analysis.requirements == ["Ship MVP"]
    assert analysis.summary == "A web app"
    assert analysis.insights == ["Tight deadline"]


def test_analyze_project_unparseable_uses_raw_summary(canned_llm):
    llm = canned_llm(["Needs React developers."], provider="lmstudio")
    analysis = llm.analyze_project("Build a web app")
    assert analysis.skills == []
    assert analysis.summary == "Needs React developers."


def test_find_matching_profile(canned_llm):
    payload = (
        '{"experienceLevels": {"React": "Advanced", "AWS": 3}, '
        '"complementarySkills": ["Redux"], "suggestedRoles": ["Frontend Developer"]}'
    )
    llm = canned_llm([payload], provider="lmstudio")
    profile = llm.find_matching_profile(["React", "AWS"])

    assert profile.experience_levels == {"React": "Advanced", "AWS": "3"}
    assert profile.complementary_skills == ["Redux"]
    assert profile.suggested_roles == ["Frontend Developer"]


def test_find_matching_profile_unparseable(canned_llm):
    llm = canned_llm(["nothing useful"], provider="lmstudio")
    assert llm.find_matching_profile(["React"]).experience_levels == {}
