from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


class ProjectRequirements(BaseModel):
    """Requisiti di un progetto. L'ordine di required_skills indica la priorità."""
    project_id: Optional[str] = None
    title: Optional[str] = None
    description: str = ""
    required_skills: List[str] = []
    requirements: List[str] = []
    summary: Optional[str] = None
    insights: List[str] = []
    owner_id: Optional[str] = None


class ProjectAnalysis(BaseModel):
    """Analisi di una descrizione di progetto restituita dall'LLM."""
    skills: List[str] = []
    requirements: List[str] = []
    summary: str = ""
    insights: List[str] = []


class MatchingProfile(BaseModel):
    """Profilo ideale di collaboratore per un insieme di skill."""
    experience_levels: Dict[str, str] = Field(default_factory=dict, alias="experienceLevels")
    complementary_skills: List[str] = Field(default_factory=list, alias="complementarySkills")
    suggested_roles: List[str] = Field(default_factory=list, alias="suggestedRoles")

    model_config = ConfigDict(populate_by_name=True)
