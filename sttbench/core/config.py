# core/config.py
import math
from typing import Optional

from pydantic import BaseModel, Field

from .errors import ValidationError

DEFAULT_DATASET = "benchmarks/transcription/dataset.example.jsonl"
DEFAULT_PROVIDERS = "benchmarks/transcription/providers.example.json"
DEFAULT_OUT_DIR = "benchmarks/transcription/results"
DEFAULT_TIMEOUT_MS = 120_000


class Weights(BaseModel):
    accuracy: float = Field(default=40, ge=0, allow_inf_nan=False)
    latency: float = Field(default=25, ge=0, allow_inf_nan=False)
    cost: float = Field(default=20, ge=0, allow_inf_nan=False)
    dx: float = Field(default=15, ge=0, allow_inf_nan=False)


class BenchmarkConfig(BaseModel):
    dataset: str = DEFAULT_DATASET
    providers: str = DEFAULT_PROVIDERS
    out_dir: str = DEFAULT_OUT_DIR
    max_samples: Optional[int] = Field(default=None, gt=0)  # None = whole dataset
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    concurrency: int = Field(default=1, gt=0)
    weights: Weights = Field(default_factory=Weights)


def parse_weights(spec: Optional[str], base: Optional[Weights] = None) -> Weights:
    """
    Parse "accuracy=40,latency=25" style overrides on top of `base`.
    Keys not mentioned keep their current value.
    """
    base = base or Weights()
    if not spec:
        return base

    values = base.model_dump()
    for chunk in str(spec).split(","):
        part = chunk.strip()
        if not part:
            continue
        key, sep, raw = part.partition("=")
        key = key.strip()
        if not key or not sep:
            raise ValidationError(f'Invalid weight segment "{part}". Expected key=value.')
        if key not in values:
            raise ValidationError(f'Unknown weight key "{key}". Valid keys: {", ".join(values)}')
        try:
            value = float(raw)
        except ValueError:
            raise ValidationError(f'Expected a finite number for weights.{key}, received "{raw}"') from None
        if not math.isfinite(value) or value < 0:
            raise ValidationError(f'Expected a finite non-negative number for weights.{key}, received "{raw}"')
        values[key] = value
    return Weights(**values)
