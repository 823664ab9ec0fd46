# src/hubscraper/storage/models.py
# Pydantic models for rows as stored in the hub database.
# Pipeline-facing records (NormalizedModel, NormalizedScore, NewsItem) live in `..types`.

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone

from ..constants import RunStatus


class ProviderRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    colour: str = "#888888"
    website: Optional[str] = None
    status_url: Optional[str] = None
    docs_url: Optional[str] = None
    description: Optional[str] = None
    founded: Optional[str] = None
    headquarters: Optional[str] = None
    ceo: Optional[str] = None
    funding: Optional[str] = None


class BenchmarkRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str = "general"
    description: Optional[str] = None
    url: Optional[str] = None
    scale_min: float = 0
    scale_max: float = 100
    higher_is_better: bool = True
    weight: float = 1.0


class ModelRow(BaseModel):
    """A row of the models table as read back by downstream consumers."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    provider_id: str
    input_price: float
    output_price: float
    context_window: int = 0
    max_output: int = 0
    speed: int = 0
    quality_score: float = 0
    released: Optional[str] = None
    open_source: bool = False
    modality: str = "text"
    api_available: bool = True
    notes: Optional[str] = None
    category: str = "llm"
    status: str = "active"
    pricing_source: Optional[str] = None
    pricing_updated: Optional[str] = None

    @property
    def modalities(self):
        return [m.strip() for m in self.modality.split(",") if m.strip()]


class PriceHistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    model_id: str
    input_price: float
    output_price: float
    source: Optional[str] = None
    recorded_at: str


class ScrapeLogEntry(BaseModel):
    """One reconciliation run of one source. Written once, never updated."""
    scraper: str = Field(..., description="Source name, e.g. pricing:openrouter")
    status: RunStatus
    models_updated: int = 0
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
