# core/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# -----------------------
# Loaded records (validated once, then immutable)
# -----------------------
class Sample(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    reference: str
    audio_file: Optional[str] = Field(default=None, alias="audioFile")
    tags: FrozenSet[str] = Field(default_factory=frozenset)
    # values are checked per call so one bad hypothesis fails one sample, not the load
    hypotheses: Dict[str, Any] = Field(default_factory=dict)


class Provider(BaseModel):
    # extra="allow" keeps settings of provider kinds registered outside this package
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    enabled: bool = True

    endpoint: Optional[str] = None
    model: Optional[str] = None
    command: Optional[str] = None
    api_key_env: Optional[str] = Field(default=None, alias="apiKeyEnv")
    language: Optional[str] = None
    prompt: Optional[str] = None
    temperature: Optional[float] = None
    field: Optional[str] = None
    smart_format: Optional[bool] = Field(default=None, alias="smartFormat")
    punctuate: Optional[bool] = None

    cost_per_hour_usd: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, alias="costPerHourUsd")
    integration_effort: Optional[int] = Field(default=None, ge=1, le=5, alias="integrationEffort")


# -----------------------
# Run outputs
# -----------------------
STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class SampleResult:
    provider_id: str
    sample_id: str
    status: str
    latency_ms: float
    reference: str
    tags: List[str] = field(default_factory=list)
    wer: Optional[float] = None
    cer: Optional[float] = None
    transcript: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self):
        if self.status == STATUS_OK:
            if self.wer is None or self.cer is None or self.transcript is None or self.error is not None:
                raise ValueError("ok result needs wer, cer and transcript and no error")
        elif self.status == STATUS_ERROR:
            if self.error is None or any(v is not None for v in (self.wer, self.cer, self.transcript)):
                raise ValueError("error result carries only an error message")
        else:
            raise ValueError(f"unknown status {self.status!r}")

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sampleId": self.sample_id,
            "providerId": self.provider_id,
            "status": self.status,
            "latencyMs": self.latency_ms,
            "wer": self.wer,
            "cer": self.cer,
            "transcript": self.transcript,
            "reference": self.reference,
            "tags": list(self.tags),
            "error": self.error,
        }


# camelCase report column -> attribute; order is the CSV column order
SUMMARY_COLUMNS = {
    "providerId": "provider_id",
    "providerType": "provider_type",
    "totalSamples": "total_samples",
    "okCount": "ok_count",
    "errorCount": "error_count",
    "successRatePct": "success_rate_pct",
    "avgWer": "avg_wer",
    "medianWer": "median_wer",
    "avgCer": "avg_cer",
    "avgLatencyMs": "avg_latency_ms",
    "p90LatencyMs": "p90_latency_ms",
    "costPerHourUsd": "cost_per_hour_usd",
    "integrationEffort": "integration_effort",
    "accuracyScore": "accuracy_score",
    "latencyScore": "latency_score",
    "costScore": "cost_score",
    "dxScore": "dx_score",
    "totalScore": "total_score",
}


@dataclass(frozen=True)
class ProviderSummary:
    provider_id: str
    provider_type: str
    total_samples: int
    ok_count: int
    error_count: int
    success_rate_pct: float
    avg_wer: Optional[float] = None
    median_wer: Optional[float] = None
    avg_cer: Optional[float] = None
    avg_latency_ms: Optional[float] = None
    p90_latency_ms: Optional[float] = None
    cost_per_hour_usd: Optional[float] = None
    integration_effort: Optional[int] = None
    accuracy_score: Optional[float] = None
    latency_score: Optional[float] = None
    cost_score: Optional[float] = None
    dx_score: Optional[float] = None
    total_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        raw = asdict(self)
        return {col: raw[attr] for col, attr in SUMMARY_COLUMNS.items()}


@dataclass
class BenchmarkReport:
    metadata: Dict[str, Any]
    summary: List[ProviderSummary]
    sample_results: List[SampleResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata,
            "summary": [row.to_dict() for row in self.summary],
            "sampleResults": [row.to_dict() for row in self.sample_results],
        }
