"""
Profile Agent (LLM-based)
Agente che costruisce il profilo skill di un utente a partire dal CV.

Responsabilità:
- Legge il CV (testo o PDF)
- Usa LLMService per estrarre le skill tecniche
- Rimuove duplicati mantenendo la grafia originale
- Produce un UserProfile pronto per il matching
"""

from typing import Dict, List, Optional
from pathlib import Path

from PyPDF2 import PdfReader

from src.services.llm_service import LLMService, LLMUnavailableError
from src.services.skill_taxonomy import normalize_skill
from src.services.logging_utils import print_with_prefix
from src.models.user import UserProfile

# Lunghezza massima del testo CV conservato nel profilo
RAW_TEXT_PREVIEW = 500


class ProfileAgent:
    """
    Agente che analizza CV e produce profili skill utente.
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
            self._log("Inizializzazione LLMService...")
            self._llm_service = LLMService(verbose=self.verbose)
        return self._llm_service

    def _extract_text_from_pdf(self, pdf_path: str) -> str:
        """Estrae testo da un file PDF."""
        reader = PdfReader(pdf_path)
        text_parts = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text)
        return "\n".join(text_parts)

    def analyze(
        self,
        resume_input: str,
        user_id: Optional[str] = None,
        name: Optional[str] = None,
        skill_experience: Optional[Dict[str, float]] = None
    ) -> UserProfile:
        """
        Analizza un CV e produce il profilo skill dell'utente.

        Args:
            resume_input: Testo del CV o percorso a file PDF
            user_id: Identificativo utente (opzionale)
            name: Nome da mostrare (opzionale)
            skill_experience: Livelli di esperienza già noti (opzionale)

        Returns:
            UserProfile; skill vuote se l'LLM non è disponibile
        """
        if resume_input.lower().endswith(".pdf") and Path(resume_input).exists():
            self._log("Step 1: Estrazione testo da PDF...")
            resume_text = self._extract_text_from_pdf(resume_input)
        else:
            resume_text = resume_input
            self._log(f"Step 1: Input è già testo ({len(resume_text)} caratteri)")

        self._log("Step 2: Estrazione skill con LLM...")
        try:
            raw_skills = self.llm_service.extract_skills(resume_text)
        except LLMUnavailableError as e:
            print_with_prefix("[ProfileAgent]", f"Errore estrazione skill: {e}")
            raw_skills = []

        skills = self._deduplicate_skills(raw_skills)
        self._log(f"   -> {len(skills)}/{len(raw_skills)} skill uniche")

        return UserProfile(
            user_id=user_id,
            name=name,
            skills=skills,
            skill_experience=skill_experience,
            raw_text=resume_text[:RAW_TEXT_PREVIEW] + "..." if len(resume_text) > RAW_TEXT_PREVIEW else resume_text
        )

    def _deduplicate_skills(self, skills: List[str]) -> List[str]:
        """Rimuove duplicati (case-insensitive), tiene la prima grafia."""
        seen = set()
        deduplicated = []

        for skill in skills:
            key = normalize_skill(skill)
            if key and key not in seen:
                seen.add(key)
                deduplicated.append(skill.strip())

        return deduplicated

    def _log(self, message: str) -> None:
        print_with_prefix("[ProfileAgent]", message, enabled=self.verbose)
