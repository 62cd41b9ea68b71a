from pydantic import BaseModel, ConfigDict
from typing import List, Literal, Optional, Tuple

# ok: risposta JSON valida
# parse_error: risposta ricevuta ma non interpretabile (score 0, testo grezzo)
# unavailable: errore di rete / timeout / provider non raggiungibile
SemanticStatus = Literal["ok", "parse_error", "unavailable"]


class SkillBreakdown(BaseModel):
    """Match per tipo: esatti, correlati, per categoria."""
    model_config = ConfigDict(frozen=True)

    exact_matches: Tuple[str, ...] = ()
    related_matches: Tuple[str, ...] = ()
    category_matches: Tuple[str, ...] = ()


class MatchDetails(BaseModel):
    """Sotto-score pesati, espressi 0-100."""
    model_config = ConfigDict(frozen=True)

    exact_score: int = 0
    related_score: int = 0
    category_score: int = 0
    project_relevance_score: int = 0


class SemanticAnalysis(BaseModel):
    """Esito della chiamata LLM di analisi semantica."""
    model_config = ConfigDict(frozen=True)

    status: SemanticStatus
    score: int = 0
    analysis: str = ""
    raw_text: Optional[str] = None


class LocalScore(BaseModel):
    """Risultato dello stadio locale (deterministico) del matching."""
    model_config = ConfigDict(frozen=True)

    user_skills: Tuple[str, ...]
    project_skills: Tuple[str, ...]
    exact_matches: Tuple[str, ...]
    related_matches: Tuple[str, ...]
    category_matches: Tuple[str, ...]
    exact_component: float
    related_component: float
    category_component: float
    experience_bonus: float
    project_relevance: float
    base_score: int
    details: MatchDetails


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int  # 0-100
    analysis: str
    matched_skills: Tuple[str, ...]
    missing_skills: Tuple[str, ...]
    recommendations: Tuple[str, ...]
    skill_breakdown: SkillBreakdown
    match_details: MatchDetails
    base_score: int = 0
    semantic_status: SemanticStatus = "ok"


class CollaboratorMatch(BaseModel):
    """Utente candidato a collaborare su un progetto."""
    user_id: Optional[str] = None
    name: Optional[str] = None
    skills: List[str] = []
    match_score: float = 0.0  # 0-100
    matching_skills: List[str] = []
    experience_level: str = "Not specified"
