"""API response models."""

from pydantic import BaseModel, Field
from typing import Optional, Literal

from yamlcheck.validators.models import Message


class ConvertResponse(BaseModel):
    """Result of a conversion. Exactly one field is set, the target format."""

    yaml: Optional[str] = None
    json_text: Optional[str] = Field(default=None, alias="json")

    model_config = {"populate_by_name": True}


class HealthDependency(BaseModel):
    """Health status of a single dependency."""

    status: Literal["healthy", "unhealthy", "degraded"]
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class GateStatus(BaseModel):
    """Concurrency gate usage."""

    capacity: int
    in_use: int
    peak: int


class CacheStatus(BaseModel):
    """Result cache counters."""

    size: int
    hits: int
    misses: int
    corrupt: int


class HealthResponse(BaseModel):
    """System health check response."""

    status: Literal["healthy", "unhealthy", "degraded"]
    version: str = "1.0.0"
    uptime_seconds: float
    dependencies: dict[str, HealthDependency]
    gate: GateStatus
    cache: CacheStatus


class SuggestionItem(BaseModel):
    """One suggestion; its position in the list is the index /apply-suggestions takes."""

    index: int
    path: str
    message: str
    kind: Literal["add", "rename", "type"]
    fixable: bool


class SuggestResponse(BaseModel):
    """Provider analyzer output for a document."""

    provider: Literal["aws", "azure", "generic"]
    suggestions: list[SuggestionItem]
    messages: list[Message]


class ApplySuggestionsResponse(BaseModel):
    """The document after the selected fixes."""

    yaml: str
    changed: bool
