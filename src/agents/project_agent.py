"""
Project Agent (LLM-based)
Agente che analizza la descrizione di un progetto e costruisce i requisiti.

Responsabilità:
- Usa LLMService per estrarre skill richieste, requisiti, riassunto e insight
- Pulisce e deduplica le skill estratte
- Unisce le skill dichiarate dal proprietario con quelle estratte
- Produce ProjectRequirements pronti per il matching
"""

from typing import List, Optional

from src.services.llm_service import LLMService
from src.services.skill_taxonomy import normalize_skill
from src.services.logging_utils import log_section, print_with_prefix
from src.models.project import ProjectRequirements


class ProjectAgent:
    """
    Agente che analizza descrizioni di progetto e produce requisiti.
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        verbose: bool = False
    ):
        self.verbose = verbose
        self._llm_service = llm_service

    @property
    def llm_service(self) -> LLMService:
        if self._llm_service is None:
            self._log("Initializing LLMService...")
            self._llm_service = LLMService(verbose=self.verbose)
        return self._llm_service

    def analyze(
        self,
        description: str,
        project_id: Optional[str] = None,
        title: Optional[str] = None,
        declared_skills: Optional[List[str]] = None,
        owner_id: Optional[str] = None
    ) -> ProjectRequirements:
        """
        Analizza una descrizione di progetto.

        Le skill dichiarate dal proprietario vengono prima (priorità più alta),
        seguite da quelle estratte dall'LLM.

        Raises:
            LLMUnavailableError: se il modello non è raggiungibile
        """
        log_section(self._log, "PROJECT AGENT: Analyzing description", width=60, char="=")

        analysis = self.llm_service.analyze_project(description)
        self._log(f"   Skills: {len(analysis.skills)}, Requirements: {len(analysis.requirements)}")

        required_skills = self._clean_skills(list(declared_skills or []) + analysis.skills)
        self._log(f"   After cleaning: {len(required_skills)} skills")

        return ProjectRequirements(
            project_id=project_id,
            title=title,
            description=description,
            required_skills=required_skills,
            requirements=analysis.requirements,
            summary=analysis.summary or None,
            insights=analysis.insights,
            owner_id=owner_id
        )

    def _clean_skills(self, skills: List[str]) -> List[str]:
        """Pulisce e deduplica le skill mantenendo l'ordine."""
        cleaned = []
        seen = set()

        for skill in skills:
            if not skill or not isinstance(skill, str):
                continue

            key = normalize_skill(skill)
            if not key or key in seen:
                continue

            seen.add(key)
            cleaned.append(skill.strip())

        return cleaned

    def _log(self, message: str) -> None:
        """Conditional logging."""
        print_with_prefix("[ProjectAgent]", message, enabled=self.verbose)
