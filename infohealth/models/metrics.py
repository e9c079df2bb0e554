from enum import Enum
from typing import Dict, List
from pydantic import BaseModel, Field

class TimeRange(str, Enum):
    last_1h = "last_1h"
    last_24h = "last_24h"
    last_7d = "last_7d"

class ProviderSplit(BaseModel):
    provider: str
    count: int
    percentage: float

class MetricsSummary(BaseModel):
    total_requests: int
    avg_latency_ms: float
    p95_latency_ms: float
    # Requests where at least one provider failed, or none answered
    fallback_rate_percent: float
    # Requests answered with the canned apology (fallback / error)
    unanswered_rate_percent: float = 0.0
    provider_split: List[ProviderSplit]
    language_split: Dict[str, int] = Field(default_factory=dict)
