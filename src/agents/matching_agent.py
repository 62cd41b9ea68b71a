"""
Matching Agent
Calcola la compatibilità tra le skill di un utente e quelle richieste da un progetto.

Responsabilità:
- Confronta skill canoniche (match esatto)
- Usa le relazioni tra skill (match correlato)
- Usa le categorie di skill (match per categoria)
- Aggiunge bonus esperienza e rilevanza delle skill critiche
- Combina lo score locale con l'analisi semantica dell'LLM
- Genera analisi e raccomandazioni

Tre stadi indipendenti:
1. compute_local_score  -> puro, deterministico
2. analyze_semantics    -> chiamata LLM, non solleva mai eccezioni
3. blend                -> puro, produce il MatchResult finale
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from src.services.llm_service import LLMService
from src.services.skill_taxonomy import SkillTaxonomy, normalize_skill, normalize_skills
from src.services.logging_utils import log_section, print_with_prefix
from src.models.weights import WeightConfig
from src.models.match_result import (
    LocalScore,
    MatchDetails,
    MatchResult,
    SemanticAnalysis,
    SkillBreakdown,
)

# Numero di skill (in ordine di priorità) considerate critiche per il progetto
CRITICAL_SKILLS_COUNT = 3
# Livello massimo di esperienza atteso e tetto del bonus
MAX_EXPERIENCE_LEVEL = 5
MAX_EXPERIENCE_BONUS = 0.3


def round_half_up(value: float) -> int:
    """Arrotondamento all'intero più vicino, .5 verso l'alto."""
    return int(math.floor(value + 0.5))


def _ratio(count: int, total: int) -> float:
    return count / total if total > 0 else 0.0


def _unique(items: Iterable[str]) -> List[str]:
    # Deduplica mantenendo ordine
    return list(dict.fromkeys(items))


class SkillMatcher:
    """
    Agente che calcola il match tra le skill di un utente e un progetto.

    LOGICA DI MATCHING:
    1. Match esatti su skill canoniche
    2. Match correlati (tabella relazioni, solo per skill non esatte)
    3. Match per categoria (euristica grossolana: basta una categoria condivisa)
    4. Bonus esperienza sui match esatti
    5. Rilevanza: copertura delle prime 3 skill del progetto
    6. Score base, poi media con lo score dell'LLM
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        taxonomy: Optional[SkillTaxonomy] = None,
        weights: Optional[WeightConfig] = None,
        verbose: bool = False
    ):
        self.taxonomy = taxonomy or SkillTaxonomy.default()
        self.weights = weights or WeightConfig()
        self.verbose = verbose

        self._llm_service = llm_service

    @property
    def llm_service(self) -> LLMService:
        if self._llm_service is None:
            self._llm_service = LLMService(verbose=self.verbose)
        return self._llm_service

    def calculate_match(
        self,
        user_skills: List[str],
        project_skills: List[str],
        project_description: str,
        user_experience: Optional[Dict[str, float]] = None
    ) -> MatchResult:
        """
        Calcola il match tra skill utente e skill richieste dal progetto.

        Args:
            user_skills: Skill dell'utente (testo libero)
            project_skills: Skill richieste, in ordine di priorità
            project_description: Descrizione del progetto
            user_experience: Livelli di esperienza opzionali (skill canonica -> livello)

        Returns:
            MatchResult immutabile
        """
        log_section(self._log, "Step 1: Score locale", width=60, char="-")
        local = self.compute_local_score(user_skills, project_skills, user_experience)
        self._log(f"   -> Esatti: {local.exact_matches}")
        self._log(f"   -> Correlati: {local.related_matches}")
        self._log(f"   -> Categoria: {local.category_matches}")
        self._log(f"   -> Score base: {local.base_score}/100")

        log_section(self._log, "Step 2: Analisi semantica", width=60, char="-")
        semantic = self.analyze_semantics(
            user_skills or [], project_skills or [], project_description or "", local
        )
        self._log(f"   -> Esito: {semantic.status}, score {semantic.score}/100")

        result = self.blend(local, semantic)
        self._log(f"SCORE FINALE: {result.score}/100")
        return result

    # ═══════════════════════════════════════════════════════════════
    # STADIO 1: score locale (puro)
    # ═══════════════════════════════════════════════════════════════

    def compute_local_score(
        self,
        user_skills: List[str],
        project_skills: List[str],
        user_experience: Optional[Dict[str, float]] = None
    ) -> LocalScore:
        """Calcola match e sotto-score senza chiamate esterne."""
        normalized_user = normalize_skills(user_skills)
        normalized_project = normalize_skills(project_skills)
        user_set = set(normalized_user)
        n_project = len(normalized_project)

        exact_matches = [s for s in normalized_project if s in user_set]
        related_matches = self._find_related_matches(user_set, normalized_project)
        category_matches = self._find_category_matches(user_set, normalized_project)

        experience_bonus = 0.0
        if user_experience:
            experience_bonus = self._calculate_experience_bonus(exact_matches, user_experience)

        project_relevance = self._calculate_project_relevance(
            exact_matches + related_matches, normalized_project
        )

        exact_component = _ratio(len(exact_matches), n_project) * self.weights.exact
        related_component = _ratio(len(related_matches), n_project) * self.weights.related
        category_component = _ratio(len(category_matches), n_project) * self.weights.category

        total = (
            exact_component +
            related_component +
            category_component +
            experience_bonus +
            project_relevance * self.weights.project_relevance
        )
        base_score = max(0, min(100, round_half_up(total * 100)))

        return LocalScore(
            user_skills=normalized_user,
            project_skills=normalized_project,
            exact_matches=exact_matches,
            related_matches=related_matches,
            category_matches=category_matches,
            exact_component=exact_component,
            related_component=related_component,
            category_component=category_component,
            experience_bonus=experience_bonus,
            project_relevance=project_relevance,
            base_score=base_score,
            details=MatchDetails(
                exact_score=round_half_up(exact_component * 100),
                related_score=round_half_up(related_component * 100),
                category_score=round_half_up(category_component * 100),
                project_relevance_score=round_half_up(project_relevance * 100),
            ),
        )

    def _find_related_matches(self, user_set: set, project_skills: List[str]) -> List[str]:
        """Skill di progetto non esatte ma correlate a una skill dell'utente."""
        related = []
        for project_skill in project_skills:
            if project_skill in user_set:
                continue  # già match esatto
            if self.taxonomy.related_to(project_skill) & user_set:
                related.append(project_skill)
        return related

    def _find_category_matches(self, user_set: set, project_skills: List[str]) -> List[str]:
        """
        Per ogni categoria condivisa da utente e progetto, tutte le skill di
        progetto di quella categoria contano come match.
        """
        matches = []
        for members in self.taxonomy.categories.values():
            project_in_category = [s for s in project_skills if s in members]
            if project_in_category and user_set & members:
                matches.extend(project_in_category)
        return _unique(matches)

    def _calculate_experience_bonus(
        self,
        exact_matches: List[str],
        experience: Dict[str, float]
    ) -> float:
        """Bonus esperienza normalizzato in [0, 0.3], poi pesato."""
        if not exact_matches:
            return 0.0

        levels = {normalize_skill(k): v for k, v in experience.items() if isinstance(k, str)}
        total_experience = 0.0
        for skill in exact_matches:
            level = levels.get(skill)
            if isinstance(level, (int, float)) and not isinstance(level, bool):
                total_experience += level

        normalized = total_experience / (len(exact_matches) * MAX_EXPERIENCE_LEVEL)
        return max(0.0, min(MAX_EXPERIENCE_BONUS, normalized)) * self.weights.experience

    def _calculate_project_relevance(
        self,
        matched_skills: List[str],
        project_skills: List[str]
    ) -> float:
        """Frazione delle skill critiche (le prime 3) coperte dai match."""
        critical_skills = project_skills[:CRITICAL_SKILLS_COUNT]
        if not critical_skills:
            return 0.0
        matched = set(matched_skills)
        critical_matches = [s for s in critical_skills if s in matched]
        return len(critical_matches) / len(critical_skills)

    # ═══════════════════════════════════════════════════════════════
    # STADIO 2: analisi semantica (LLM)
    # ═══════════════════════════════════════════════════════════════

    def analyze_semantics(
        self,
        user_skills: List[str],
        project_skills: List[str],
        project_description: str,
        local: LocalScore
    ) -> SemanticAnalysis:
        """
        Chiede all'LLM un giudizio semantico. Se il servizio non è disponibile
        usa un fallback locale con lo score base.
        """
        try:
            response = self.llm_service.analyze_skill_match(
                project_skills=list(project_skills),
                user_skills=list(user_skills),
                project_description=project_description
            )
            semantic = self._to_semantic_analysis(response)
        except Exception as e:
            # Il collaboratore esterno non deve mai interrompere il match
            self._log(f"Analisi LLM fallita, uso solo lo score base: {e}", force=True)
            semantic = SemanticAnalysis(status="unavailable")

        if semantic.status == "unavailable":
            return SemanticAnalysis(
                status="unavailable",
                score=local.base_score,
                analysis=self.generate_analysis(
                    local.exact_matches, local.related_matches, local.project_skills
                ),
            )
        return semantic

    @staticmethod
    def _to_semantic_analysis(response: Any) -> SemanticAnalysis:
        """Accetta un SemanticAnalysis o un mapping {score, analysis}."""
        if isinstance(response, SemanticAnalysis):
            return response
        if isinstance(response, Mapping):
            return SemanticAnalysis.model_validate({"status": "ok", **response})
        raise TypeError(f"Risposta di analisi non valida: {type(response).__name__}")

    # ═══════════════════════════════════════════════════════════════
    # STADIO 3: combinazione (puro)
    # ═══════════════════════════════════════════════════════════════

    def blend(self, local: LocalScore, semantic: SemanticAnalysis) -> MatchResult:
        """Combina score locale e semantico nel risultato finale."""
        final_score = round_half_up((local.base_score + semantic.score) / 2)
        final_score = max(0, min(100, final_score))

        matched = set(local.exact_matches) | set(local.related_matches)
        missing_skills = _unique([s for s in local.project_skills if s not in matched])

        analysis = semantic.analysis or self.generate_analysis(
            local.exact_matches, local.related_matches, local.project_skills
        )

        return MatchResult(
            score=final_score,
            analysis=analysis,
            matched_skills=_unique(local.exact_matches + local.related_matches),
            missing_skills=missing_skills,
            recommendations=self.generate_recommendations(missing_skills),
            skill_breakdown=SkillBreakdown(
                exact_matches=local.exact_matches,
                related_matches=local.related_matches,
                category_matches=local.category_matches,
            ),
            match_details=local.details,
            base_score=local.base_score,
            semantic_status=semantic.status,
        )

    def generate_analysis(
        self,
        exact_matches: List[str],
        related_matches: List[str],
        required_skills: List[str]
    ) -> str:
        """Analisi testuale locale del match."""
        match_percentage = round_half_up(
            _ratio(len(exact_matches) + len(related_matches) * 0.5, len(required_skills)) * 100
        )

        analysis = f"You match {match_percentage}% of the required skills. "

        if exact_matches:
            analysis += f"You have direct experience with {', '.join(exact_matches)}. "

        if related_matches:
            analysis += f"You have related experience that could apply to {', '.join(related_matches)}. "

        return analysis

    def generate_recommendations(self, missing_skills: List[str]) -> List[str]:
        """Una raccomandazione per ogni skill mancante."""
        recommendations = []
        for skill in missing_skills:
            category = self.taxonomy.primary_category(skill)
            if category:
                recommendations.append(f"Consider learning {skill} to strengthen your {category} skills")
            else:
                recommendations.append(f"Consider learning {skill}")
        return recommendations

    def _log(self, message: str, force: bool = False) -> None:
        print_with_prefix("[SkillMatcher]", message, enabled=self.verbose or force)
