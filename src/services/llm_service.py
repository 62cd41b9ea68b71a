"""
LLM Service
Wrapper per LLM (Ollama o endpoint compatibile OpenAI come LM Studio) - gestisce le chiamate al modello.
"""

import json
import os
import re
from typing import Optional, List, Dict, Any

import ollama

from src.models.match_result import SemanticAnalysis
from src.models.project import ProjectAnalysis, MatchingProfile
from src.services.logging_utils import log_section, print_with_prefix


class LLMUnavailableError(Exception):
    """Eccezione per quando il provider LLM non è raggiungibile o la chiamata fallisce."""
    pass


class LLMService:
    """
    Servizio per interagire con un LLM (Ollama o LM Studio / OpenAI-compatibile).
    """

    def __init__(
        self,
        model: str = "llama3.2",
        temperature: float = 0.3,
        timeout: int = 30,
        num_gpu: int = -1,  # -1 = auto (usa tutte le GPU disponibili)
        provider: Optional[str] = None,  # "ollama" o "lmstudio"
        ollama_host: Optional[str] = None,
        lmstudio_base_url: Optional[str] = None,
        lmstudio_api_key: Optional[str] = None,
        lmstudio_model: Optional[str] = None,
        verbose: bool = True
    ):
        """
        Inizializza il servizio LLM.

        Args:
            model: Nome del modello Ollama
            temperature: Temperatura per la generazione (0-1, più basso = più deterministico)
            timeout: Timeout in secondi per ogni chiamata al modello
            num_gpu: Numero di layer GPU (-1 = auto, 0 = solo CPU)
            provider: "ollama" o "lmstudio" (default: env LLM_PROVIDER o "lmstudio")
            ollama_host: Host Ollama (default: env OLLAMA_HOST o http://localhost:11434)
            lmstudio_base_url: Base URL (default: env LMSTUDIO_BASE_URL o http://localhost:1234/v1)
            lmstudio_api_key: API key (default: env LMSTUDIO_API_KEY o "lmstudio")
            lmstudio_model: Nome modello LM Studio (default: env LMSTUDIO_MODEL, fallback su "model")
            verbose: Se False, silenzia i log informativi
        """
        self.provider = (provider or os.getenv("LLM_PROVIDER", "lmstudio")).lower()
        if self.provider not in {"ollama", "lmstudio"}:
            raise ValueError("provider deve essere 'ollama' o 'lmstudio'")

        if self.provider == "lmstudio":
            self.model = lmstudio_model or os.getenv("LMSTUDIO_MODEL") or model
        else:
            self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.num_gpu = num_gpu
        self.verbose = verbose
        self.is_available = False
        self._ollama_client = None
        self._lmstudio_client = None
        self.ollama_host = ollama_host or os.getenv("OLLAMA_HOST", "http://localhost:11434")
        self.lmstudio_base_url = lmstudio_base_url or os.getenv("LMSTUDIO_BASE_URL", "http://localhost:1234/v1")
        self.lmstudio_api_key = lmstudio_api_key or os.getenv("LMSTUDIO_API_KEY", "lmstudio")

        # Verifica provider
        if self.provider == "ollama":
            self._check_ollama()
        else:
            self._check_lmstudio()

    def _get_ollama_client(self) -> ollama.Client:
        """Crea (lazy) client Ollama con timeout."""
        if self._ollama_client is None:
            self._ollama_client = ollama.Client(host=self.ollama_host, timeout=self.timeout)
        return self._ollama_client

    def _check_ollama(self) -> None:
        """Verifica che Ollama sia in esecuzione e il modello sia disponibile."""
        try:
            models = self._get_ollama_client().list()
            model_names = [m.model for m in models.models] if models.models else []

            # Cerca il modello (con o senza tag :latest)
            model_found = any(
                self.model in name or name.startswith(self.model)
                for name in model_names
            )

            if not model_found:
                self._log(f"Modello '{self.model}' non trovato. Modelli disponibili: {model_names}")
                self._log(f"Esegui: ollama pull {self.model}")
                self.is_available = False
            else:
                self.is_available = True
                self._log(f"LLM Service pronto (modello: {self.model})")

        except Exception as e:
            self.is_available = False
            self._log(f"Errore connessione Ollama: {e}")
            self._log("Assicurati che Ollama sia in esecuzione (ollama serve)")

    def _get_lmstudio_client(self):
        """Crea (lazy) client OpenAI compatibile con LM Studio."""
        if self._lmstudio_client is None:
            try:
                from openai import OpenAI
            except ImportError as e:
                raise LLMUnavailableError(
                    "Package 'openai' mancante. Installa con: pip install openai"
                ) from e

            self._lmstudio_client = OpenAI(
                base_url=self.lmstudio_base_url,
                api_key=self.lmstudio_api_key,
                timeout=self.timeout,
                max_retries=0
            )
        return self._lmstudio_client

    def _check_lmstudio(self) -> None:
        """Verifica che LM Studio sia raggiungibile e il modello disponibile."""
        try:
            client = self._get_lmstudio_client()
            models = client.models.list()
            model_names = [m.id for m in models.data] if getattr(models, "data", None) else []

            model_found = any(
                self.model in name or name.startswith(self.model)
                for name in model_names
            )

            if not model_found:
                self._log(f"Modello '{self.model}' non trovato su LM Studio. Modelli disponibili: {model_names}")
                self.is_available = False
            else:
                self.is_available = True
                self._log(f"LLM Service pronto (provider: lmstudio, modello: {self.model})")
        except Exception as e:
            self.is_available = False
            self._log(f"LM Studio non raggiungibile: {e}")

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Genera testo dal prompt.

        Args:
            prompt: Il prompt da inviare al modello
            system_prompt: Prompt di sistema opzionale
            temperature: Override della temperatura

        Returns:
            Testo generato dal modello

        Raises:
            LLMUnavailableError: provider non disponibile, errore di rete o timeout
        """
        if not self.is_available:
            if self.provider == "ollama":
                raise LLMUnavailableError(
                    "Ollama non disponibile. Avvialo con 'ollama serve' e assicurati "
                    f"che il modello '{self.model}' sia installato (ollama pull {self.model})"
                )
            raise LLMUnavailableError(
                "LM Studio non disponibile. Avvialo e assicurati che l'endpoint sia raggiungibile "
                f"(base_url={self.lmstudio_base_url}) e che il modello '{self.model}' sia caricato"
            )

        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        if temperature is None:
            temperature = self.temperature

        try:
            if self.provider == "ollama":
                response = self._get_ollama_client().chat(
                    model=self.model,
                    messages=messages,
                    options={
                        "temperature": temperature,
                        "num_gpu": self.num_gpu  # -1 = usa tutte le GPU
                    }
                )
                return response.message.content or ""

            client = self._get_lmstudio_client()
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            if self.provider == "ollama":
                raise LLMUnavailableError(f"Errore chiamata Ollama: {e}") from e
            raise LLMUnavailableError(f"Errore chiamata LM Studio: {e}") from e

    def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Genera e parsa JSON dal prompt.

        Returns:
            Dizionario parsato o None se parsing fallisce
        """
        # Aggiungi istruzione per JSON se non presente
        if "json" not in prompt.lower():
            prompt += "\n\nRespond ONLY with valid JSON, no other text."

        response_text = self.generate(prompt, system_prompt, temperature)

        return self._extract_json(response_text)

    def _extract_json(self, text: str) -> Optional[Dict[str, Any]]:
        """Estrae un oggetto JSON da testo che potrebbe contenere altro."""
        if not text:
            return None

        # Prima prova parsing diretto
        try:
            parsed = json.loads(text.strip())
            return parsed if isinstance(parsed, dict) else None
        except json.JSONDecodeError:
            pass

        # Prova a decodificare un oggetto da ogni "{" (anche dentro blocchi di codice)
        decoder = json.JSONDecoder()
        start_idx = text.find("{")
        while start_idx != -1:
            try:
                parsed, _ = decoder.raw_decode(text, start_idx)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
            start_idx = text.find("{", start_idx + 1)

        return None

    def analyze_skill_match(
        self,
        project_skills: List[str],
        user_skills: List[str],
        project_description: str
    ) -> SemanticAnalysis:
        """
        Chiede al modello uno score di compatibilità 0-100 e un'analisi testuale.

        Non solleva eccezioni:
        - errore di rete / timeout -> status "unavailable"
        - risposta non interpretabile -> status "parse_error", score 0, testo grezzo come analisi
        """
        prompt = f"""Analyze the compatibility between a user's skills and a project's requirements.

Project Description: {project_description}
Required Skills: {', '.join(project_skills)}
User's Skills: {', '.join(user_skills)}

Please provide:
1. A match score (0-100)
2. A detailed analysis of the skill match
3. Recommendations for any missing but important skills

Format the response as a JSON object with the following structure:
{{
    "score": number,
    "analysis": string
}}"""

        try:
            response_text = self.generate(prompt, temperature=0.2)
        except LLMUnavailableError as e:
            self._log(f"Analisi skill match non disponibile: {e}")
            return SemanticAnalysis(status="unavailable", analysis="")

        result = self._extract_json(response_text)
        score = self._coerce_score(result.get("score")) if result else None

        if score is None:
            self._log("Risposta LLM non interpretabile, uso testo grezzo (score 0)")
            return SemanticAnalysis(
                status="parse_error",
                score=0,
                analysis=response_text,
                raw_text=response_text
            )

        analysis = result.get("analysis")
        return SemanticAnalysis(
            status="ok",
            score=score,
            analysis=analysis if isinstance(analysis, str) else "",
            raw_text=response_text
        )

    @staticmethod
    def _coerce_score(value: Any) -> Optional[int]:
        """Converte lo score del modello in intero 0-100 (None se non numerico)."""
        if isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if number != number:  # NaN
            return None
        number = max(0.0, min(100.0, number))
        return int(number + 0.5)

    def extract_skills(self, text: str) -> List[str]:
        """
        Estrae skill tecniche, tool, framework e tecnologie da un testo (es. CV).

        Returns:
            Lista di skill, una per riga della risposta
        """
        prompt = f"""Analyze the following resume text and extract technical skills, tools, frameworks, and technologies:

{text}

Return only the list of skills, each on a new line. Do not include any other text or explanations."""

        response_text = self.generate(prompt, temperature=0.1)

        skills = []
        for line in response_text.split("\n"):
            # Rimuove bullet/numerazione che alcuni modelli aggiungono comunque
            skill = re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line).strip()
            if skill:
                skills.append(skill)
        return skills

    def analyze_project(self, description: str) -> ProjectAnalysis:
        """
        Estrae skill richieste, requisiti, riassunto e insight da una descrizione di progetto.
        Se il JSON non è interpretabile, il testo grezzo diventa il summary.
        """
        prompt = f"""Analyze the following project description and extract:
1. Required technical skills
2. Key project requirements
3. A brief summary
4. Important insights

Project Description: {description}

Format the response as a JSON object with the following structure:
{{
    "skills": string[],
    "requirements": string[],
    "summary": string,
    "insights": string[]
}}"""

        response_text = self.generate(prompt, temperature=0.1)
        result = self._extract_json(response_text)

        log_section(self._log, "LLM RAW PROJECT ANALYSIS JSON", width=60, char="=")
        self._log(json.dumps(result, ensure_ascii=False, indent=2) if result else "<No JSON parsed>")
        self._log("=" * 60)

        if result is None:
            return ProjectAnalysis(summary=response_text)

        summary = result.get("summary")
        return ProjectAnalysis(
            skills=self._string_list(result.get("skills")),
            requirements=self._string_list(result.get("requirements")),
            summary=summary if isinstance(summary, str) else "",
            insights=self._string_list(result.get("insights"))
        )

    def find_matching_profile(self, skills: List[str]) -> MatchingProfile:
        """
        Costruisce il profilo ideale di collaboratore per un insieme di skill:
        livello di esperienza per skill, skill complementari, ruoli suggeriti.
        """
        prompt = f"""Given the following skills, analyze and create a matching profile:
Skills: {', '.join(skills)}

Please provide:
1. Required experience level for each skill
2. Complementary skills that would be valuable
3. Suggested roles for someone with this skill set

Format the response as a JSON object with the following structure:
{{
    "experienceLevels": {{ "skill": "level" }},
    "complementarySkills": string[],
    "suggestedRoles": string[]
}}"""

        result = self.generate_json(prompt, temperature=0.2)
        if result is None:
            return MatchingProfile()

        raw_levels = result.get("experienceLevels")
        levels = {}
        if isinstance(raw_levels, dict):
            levels = {
                str(skill): str(level)
                for skill, level in raw_levels.items()
                if level is not None
            }

        return MatchingProfile(
            experience_levels=levels,
            complementary_skills=self._string_list(result.get("complementarySkills")),
            suggested_roles=self._string_list(result.get("suggestedRoles"))
        )

    @staticmethod
    def _string_list(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(v).strip() for v in value if v is not None and str(v).strip()]

    def _log(self, message: str) -> None:
        print_with_prefix("[LLMService]", message, enabled=self.verbose)
