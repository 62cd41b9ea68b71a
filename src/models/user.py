from pydantic import BaseModel
from typing import Dict, List, Optional


class UserProfile(BaseModel):
    """Profilo skill di un utente (già letto dal document store)."""
    user_id: Optional[str] = None
    name: Optional[str] = None
    skills: List[str] = []
    # skill canonica -> livello (scala del chiamante, tipicamente 0-5)
    skill_experience: Optional[Dict[str, float]] = None
    raw_text: Optional[str] = None
