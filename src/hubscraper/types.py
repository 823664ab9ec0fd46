# src/hubscraper/types.py
from typing import Dict, Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import ModelCategory


class NormalizedModel(BaseModel):
    """A model-with-pricing record in the hub's common shape, ready for reconciliation."""
    id: str = Field(..., description="Internal model id")
    name: str = Field(..., description="Display name")
    provider_id: str = Field(..., description="Internal provider id; must exist in providers")
    input_price: float = Field(..., ge=0, description="USD per 1M input units")
    output_price: float = Field(..., ge=0, description="USD per 1M output units")
    pricing_source: str = Field(..., description="Label of the pricing source, e.g. openai.com/api/pricing")
    # Only used when the model is inserted for the first time
    context_window: Optional[int] = None
    max_output: Optional[int] = None
    speed: Optional[int] = None
    quality_score: Optional[float] = None
    released: Optional[str] = None
    open_source: bool = False
    modalities: List[str] = Field(default_factory=lambda: ["text"])
    api_available: bool = True
    notes: Optional[str] = None
    category: ModelCategory = ModelCategory.LLM

    @field_validator("modalities", mode="before")
    @classmethod
    def split_modality_string(cls, v):
        # Catalog files may carry "text,vision" instead of a list
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @property
    def modality(self) -> str:
        return ",".join(self.modalities)


class NormalizedScore(BaseModel):
    """A single (model, benchmark) score measurement."""
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    benchmark_id: str
    score: float
    source: str
    source_url: Optional[str] = None
    measured_at: Optional[str] = Field(None, description="YYYY-MM-DD")


class NewsItem(BaseModel):
    id: str = Field(..., description="{file-date}-{slugified title}")
    title: str
    url: str
    source: str
    summary: str = ""
    published_at: str = Field(..., description="YYYY-MM-DD")
    category: str


class SourceResult(BaseModel):
    """Outcome of running one source through the pipeline."""
    name: str
    status: str
    count: int = 0
    error: Optional[str] = None


class RunSummary(BaseModel):
    results: List[SourceResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        # Failed sources always carry count 0
        return sum(r.count for r in self.results)

    @property
    def failed(self) -> List[str]:
        return [r.name for r in self.results if r.error is not None]


NormalizedRecord = Union[NormalizedModel, NormalizedScore]
NormalizedRecords = List[NormalizedRecord]

# Whatever a source's fetch step hands to its normalize step
RawPayload = Any

# Configuration dictionary structure (simplified)
Config = Dict[str, Any]
