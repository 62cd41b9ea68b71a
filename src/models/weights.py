from pydantic import BaseModel, ConfigDict


class WeightConfig(BaseModel):
    """Pesi applicati ai sotto-score prima della somma."""
    model_config = ConfigDict(frozen=True)

    exact: float = 1.0               # Match esatti
    related: float = 0.5             # Match tramite skill correlate
    experience: float = 0.3          # Bonus livello di esperienza
    category: float = 0.4            # Match per categoria
    project_relevance: float = 0.6   # Copertura delle skill critiche del progetto
