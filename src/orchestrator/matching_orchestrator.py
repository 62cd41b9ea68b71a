"""
Matching Orchestrator
Coordina gli agenti e le regole applicative attorno al matching.

Responsabilità:
- Inizializza e coordina SkillMatcher, ProfileAgent, ProjectAgent
- Calcola il match utente <-> progetto a partire dai documenti già letti
- Decide se un utente può chiedere di unirsi a un progetto
- Cerca potenziali collaboratori per un progetto
"""

from typing import Iterable, List, Optional

from src.agents.matching_agent import SkillMatcher
from src.agents.profile_agent import ProfileAgent
from src.agents.project_agent import ProjectAgent
from src.services.llm_service import LLMService, LLMUnavailableError
from src.services.skill_taxonomy import SkillTaxonomy, normalize_skill, normalize_skills
from src.services.logging_utils import log_fields, log_section, print_with_prefix
from src.models.weights import WeightConfig
from src.models.user import UserProfile
from src.models.project import MatchingProfile, ProjectRequirements
from src.models.match_result import CollaboratorMatch, MatchResult

# Score minimo per poter chiedere di unirsi a un progetto
MIN_JOIN_SCORE = 40
# Soglia per un match forte
STRONG_MATCH_SCORE = 70
NOT_SPECIFIED = "Not specified"


def score_band(score: float) -> str:
    """Fascia di compatibilità: strong (>= 70), moderate (>= 40), weak."""
    if score >= STRONG_MATCH_SCORE:
        return "strong"
    if score >= MIN_JOIN_SCORE:
        return "moderate"
    return "weak"


def can_request_to_join(result: MatchResult) -> bool:
    return result.score >= MIN_JOIN_SCORE


class MatchingOrchestrator:
    """
    Orchestratore che coordina gli agenti.

    FLUSSO:
    1. (opzionale) ProfileAgent costruisce il profilo dal CV
    2. (opzionale) ProjectAgent costruisce i requisiti dalla descrizione
    3. SkillMatcher calcola il match -> MatchResult
    4. Regole: soglia per la richiesta di partecipazione, ricerca collaboratori
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        taxonomy: Optional[SkillTaxonomy] = None,
        weights: Optional[WeightConfig] = None,
        verbose: bool = False
    ):
        self.verbose = verbose

        # Servizi condivisi
        self._llm_service = llm_service
        self.taxonomy = taxonomy or SkillTaxonomy.default()
        self.weights = weights or WeightConfig()

        # Agenti (lazy init)
        self._skill_matcher = None
        self._profile_agent = None
        self._project_agent = None

    @property
    def llm_service(self) -> LLMService:
        if self._llm_service is None:
            self._llm_service = LLMService(verbose=self.verbose)
        return self._llm_service

    @property
    def skill_matcher(self) -> SkillMatcher:
        if self._skill_matcher is None:
            self._skill_matcher = SkillMatcher(
                llm_service=self.llm_service,
                taxonomy=self.taxonomy,
                weights=self.weights,
                verbose=self.verbose
            )
        return self._skill_matcher

    @property
    def profile_agent(self) -> ProfileAgent:
        if self._profile_agent is None:
            self._profile_agent = ProfileAgent(
                llm_service=self.llm_service,
                verbose=self.verbose
            )
        return self._profile_agent

    @property
    def project_agent(self) -> ProjectAgent:
        if self._project_agent is None:
            self._project_agent = ProjectAgent(
                llm_service=self.llm_service,
                verbose=self.verbose
            )
        return self._project_agent

    def match(self, user: UserProfile, project: ProjectRequirements) -> MatchResult:
        """Calcola il match tra un profilo utente e un progetto."""
        log_section(
            self._log,
            f"MATCH: {user.name or user.user_id or 'User'} vs {project.title or project.project_id or 'Project'}",
            width=70,
            char="=",
        )
        result = self.skill_matcher.calculate_match(
            user.skills,
            project.required_skills,
            project.description,
            user.skill_experience
        )

        log_fields(self._log, {
            "Score": f"{result.score}/100 ({score_band(result.score)})",
            "Base score": result.base_score,
            "Semantic": result.semantic_status,
            "Matched": len(result.matched_skills),
            "Missing": len(result.missing_skills),
            "Can join": can_request_to_join(result),
        })
        return result

    def match_from_text(
        self,
        resume_input: str,
        project_description: str,
        project_skills: Optional[List[str]] = None
    ) -> MatchResult:
        """Costruisce profilo e requisiti con l'LLM, poi calcola il match."""
        user = self.profile_agent.analyze(resume_input)
        project = self.project_agent.analyze(project_description, declared_skills=project_skills)
        return self.match(user, project)

    def find_potential_collaborators(
        self,
        project: ProjectRequirements,
        users: Iterable[UserProfile]
    ) -> List[CollaboratorMatch]:
        """
        Cerca utenti con skill in comune con il progetto.

        Score = skill richieste possedute / skill richieste * 100.
        Esclude il proprietario e gli utenti senza sovrapposizione.
        """
        required = normalize_skills(project.required_skills)
        if not required:
            self._log("Progetto senza skill richieste, nessun collaboratore")
            return []
        required_set = set(required)

        profile = self._matching_profile(project.required_skills)
        levels = {normalize_skill(k): v for k, v in profile.experience_levels.items()}

        matches = []
        for user in users:
            if project.owner_id and user.user_id == project.owner_id:
                continue

            matching_skills = [
                skill for skill in user.skills
                if normalize_skill(skill) in required_set
            ]
            # Conta le skill richieste coperte, non le occorrenze
            covered = {normalize_skill(s) for s in matching_skills}
            match_score = len(covered) / len(required_set) * 100
            if match_score <= 0:
                continue

            first = normalize_skill(matching_skills[0])
            matches.append(CollaboratorMatch(
                user_id=user.user_id,
                name=user.name,
                skills=list(user.skills),
                match_score=match_score,
                matching_skills=matching_skills,
                experience_level=levels.get(first, NOT_SPECIFIED)
            ))

        matches.sort(key=lambda m: m.match_score, reverse=True)
        self._log(f"Trovati {len(matches)} potenziali collaboratori")
        return matches

    def _matching_profile(self, skills: List[str]) -> MatchingProfile:
        try:
            return self.llm_service.find_matching_profile(skills)
        except LLMUnavailableError as e:
            print_with_prefix("[Orchestrator]", f"Profilo di matching non disponibile: {e}")
            return MatchingProfile()

    def _log(self, message: str) -> None:
        """Conditional logging."""
        print_with_prefix("[Orchestrator]", message, enabled=self.verbose)


# ═══════════════════════════════════════════════════════════════════════════
# SIMPLE API
# ═══════════════════════════════════════════════════════════════════════════

def match_user_to_project(
    user_skills: List[str],
    project_skills: List[str],
    project_description: str,
    user_experience: Optional[dict] = None,
    verbose: bool = False
) -> MatchResult:
    """
    API semplice per il matching utente-progetto.

    Args:
        user_skills: Skill dell'utente
        project_skills: Skill richieste dal progetto (in ordine di priorità)
        project_description: Descrizione del progetto
        user_experience: Livelli di esperienza opzionali
        verbose: Se True, stampa log

    Returns:
        MatchResult
    """
    orchestrator = MatchingOrchestrator(verbose=verbose)
    return orchestrator.match(
        UserProfile(skills=user_skills, skill_experience=user_experience),
        ProjectRequirements(description=project_description, required_skills=project_skills)
    )
