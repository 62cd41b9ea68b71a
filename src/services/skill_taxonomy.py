"""
Skill Taxonomy
Tabelle statiche di riferimento per il matching delle skill.

Contiene:
- Relazioni tra skill (skill -> skill correlate), dichiarate in una sola direzione
- Categorie di skill (categoria -> skill membri)

Le tabelle sono costruite una sola volta e non vengono mai modificate:
possono essere condivise tra chiamate concorrenti senza lock.

Formato CSV opzionale:
- relazioni: colonne skill, related (related separate da virgola)
- categorie: colonne category, skills (skills separate da virgola)
"""

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Union

import pandas as pd


SKILL_RELATIONSHIPS: Dict[str, List[str]] = {
    "react": ["javascript", "typescript", "frontend", "web development", "redux", "react-router", "nextjs"],
    "javascript": ["typescript", "web development", "frontend", "nodejs", "es6", "webpack"],
    "python": ["django", "flask", "backend", "data science", "machine learning", "pandas", "numpy"],
    "java": ["spring", "backend", "enterprise", "hibernate", "maven", "junit"],
    "nodejs": ["javascript", "backend", "express", "npm", "mongodb", "rest-api"],
    "typescript": ["javascript", "angular", "react", "nodejs", "type-safety"],
    "aws": ["cloud", "devops", "s3", "ec2", "lambda", "cloudformation"],
    "docker": ["kubernetes", "devops", "containerization", "microservices"],
    "sql": ["mysql", "postgresql", "database", "data modeling", "orm"],
    "machine learning": ["python", "data science", "tensorflow", "pytorch", "scikit-learn"],
    "ui/ux": ["figma", "design", "wireframing", "prototyping", "user research"],
    "agile": ["scrum", "project management", "jira", "kanban"],
    "testing": ["jest", "cypress", "selenium", "unit testing", "e2e testing"],
}

SKILL_CATEGORIES: Dict[str, List[str]] = {
    "frontend": ["react", "vue", "angular", "javascript", "typescript", "html", "css", "sass", "webpack", "nextjs", "gatsby"],
    "backend": ["nodejs", "python", "java", "php", "ruby", "golang", "express", "django", "spring", "graphql"],
    "database": ["mysql", "postgresql", "mongodb", "redis", "elasticsearch", "dynamodb", "orm", "sql", "nosql"],
    "devops": ["docker", "kubernetes", "aws", "azure", "gcp", "jenkins", "terraform", "ansible", "ci/cd"],
    "mobile": ["react native", "flutter", "ios", "android", "swift", "kotlin"],
    "ai/ml": ["machine learning", "deep learning", "python", "tensorflow", "pytorch", "nlp", "computer vision"],
    "design": ["ui/ux", "figma", "adobe xd", "sketch", "user research", "wireframing"],
    "testing": ["jest", "cypress", "selenium", "unit testing", "e2e testing", "test automation"],
    "project management": ["agile", "scrum", "jira", "trello", "project planning", "team leadership"],
    "security": ["cybersecurity", "oauth", "jwt", "encryption", "penetration testing", "security audit"],
}


def normalize_skill(label: str) -> str:
    """Forma canonica di una skill: minuscolo, senza spazi ai bordi."""
    return (label or "").strip().lower()


def normalize_skills(labels: Optional[Iterable[str]]) -> List[str]:
    """Normalizza una lista di skill mantenendo ordine e duplicati."""
    return [normalize_skill(s) for s in (labels or []) if isinstance(s, str)]


def _split_cell(value) -> List[str]:
    if pd.isna(value) or not value:
        return []
    return [normalize_skill(part) for part in str(value).split(",") if part.strip()]


class SkillTaxonomy:
    """
    Tabelle di relazioni e categorie, immutabili dopo la costruzione.

    Le relazioni NON sono simmetriche: A -> B non implica B -> A.
    L'ordine delle categorie è quello di dichiarazione (conta per le
    raccomandazioni: vince la prima categoria che contiene la skill).
    """

    __slots__ = ("_relationships", "_categories")

    def __init__(
        self,
        relationships: Mapping[str, Iterable[str]],
        categories: Mapping[str, Iterable[str]],
    ):
        rel = {
            normalize_skill(skill): frozenset(normalize_skills(related))
            for skill, related in relationships.items()
        }
        cat = {
            category: frozenset(normalize_skills(members))
            for category, members in categories.items()
        }
        object.__setattr__(self, "_relationships", MappingProxyType(rel))
        object.__setattr__(self, "_categories", MappingProxyType(cat))

    def __setattr__(self, name, value):
        raise AttributeError("SkillTaxonomy è immutabile")

    @classmethod
    def default(cls) -> "SkillTaxonomy":
        """Tassonomia predefinita (condivisa, costruita una sola volta)."""
        return default_taxonomy()

    @classmethod
    def from_csv(
        cls,
        relationships_csv: Union[str, Path],
        categories_csv: Union[str, Path],
    ) -> "SkillTaxonomy":
        """Carica relazioni e categorie da due file CSV."""
        rel_df = pd.read_csv(relationships_csv)
        cat_df = pd.read_csv(categories_csv)

        relationships: Dict[str, List[str]] = {}
        for _, row in rel_df.iterrows():
            skill = normalize_skill(str(row["skill"]))
            if skill:
                relationships.setdefault(skill, []).extend(_split_cell(row["related"]))

        categories: Dict[str, List[str]] = {}
        for _, row in cat_df.iterrows():
            category = str(row["category"]).strip()
            if category:
                categories.setdefault(category, []).extend(_split_cell(row["skills"]))

        return cls(relationships, categories)

    @property
    def relationships(self) -> Mapping[str, FrozenSet[str]]:
        return self._relationships

    @property
    def categories(self) -> Mapping[str, FrozenSet[str]]:
        return self._categories

    def related_to(self, skill: str) -> FrozenSet[str]:
        """Skill correlate dichiarate per `skill` (vuoto se assente)."""
        return self._relationships.get(skill, frozenset())

    def categories_of(self, skill: str) -> List[str]:
        """Categorie che contengono la skill, in ordine di dichiarazione."""
        return [name for name, members in self._categories.items() if skill in members]

    def primary_category(self, skill: str) -> Optional[str]:
        categories = self.categories_of(skill)
        return categories[0] if categories else None


@lru_cache(maxsize=1)
def default_taxonomy() -> SkillTaxonomy:
    return SkillTaxonomy(SKILL_RELATIONSHIPS, SKILL_CATEGORIES)
