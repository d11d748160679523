# core/scoring.py
"""
Per-provider aggregation and the weighted composite score.

Each criterion (accuracy, latency, cost, dx) is scored 0-100 or left as
None when its input is unavailable. None is not 0: the total renormalizes
the weights over the criteria that are defined, so a provider without a
cost figure is ranked on the remaining criteria instead of being punished.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .config import Weights
from .metrics import mean, percentile
from .models import Provider, ProviderSummary, SampleResult


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


# -----------------------
# Aggregation
# -----------------------
def aggregate_provider(provider: Provider, rows: Sequence[SampleResult]) -> ProviderSummary:
    ok_rows = [r for r in rows if r.ok]
    total = len(rows)
    wers = [r.wer for r in ok_rows]
    lat = [r.latency_ms for r in ok_rows]
    return ProviderSummary(
        provider_id=provider.id,
        provider_type=provider.type,
        total_samples=total,
        ok_count=len(ok_rows),
        error_count=total - len(ok_rows),
        success_rate_pct=(len(ok_rows) / total) * 100 if total else 0.0,
        avg_wer=mean(wers),
        median_wer=percentile(wers, 50),
        avg_cer=mean(r.cer for r in ok_rows),
        avg_latency_ms=mean(lat),
        p90_latency_ms=percentile(lat, 90),
        cost_per_hour_usd=provider.cost_per_hour_usd,
        integration_effort=provider.integration_effort,
    )


# -----------------------
# Criterion scores
# -----------------------
def accuracy_score(avg_wer: Optional[float]) -> Optional[float]:
    if avg_wer is None:
        return None
    return clamp((1 - avg_wer) * 100)


def latency_score(avg_latency_ms: Optional[float], best_latency_ms: Optional[float]) -> Optional[float]:
    if avg_latency_ms is None or avg_latency_ms <= 0 or best_latency_ms is None:
        return None
    return clamp(best_latency_ms / avg_latency_ms * 100)


def cost_score(cost: Optional[float], any_free: bool, lowest_positive: Optional[float]) -> Optional[float]:
    if cost is None:
        return None
    if cost == 0:
        return 100.0
    if any_free:
        # a free option dominates every paid one
        return 0.0
    if lowest_positive is None:
        return None
    return clamp(lowest_positive / cost * 100)


def dx_score(integration_effort: Optional[int]) -> Optional[float]:
    if integration_effort is None:
        return None
    return clamp((5 - integration_effort) / 4 * 100)


def composite_total(scores: Dict[str, Optional[float]], weights: Weights) -> Optional[float]:
    """Weighted mean of the defined scores, weights renormalized over them."""
    w = weights.model_dump()
    active = [(key, score) for key, score in scores.items() if score is not None]
    active_weight = sum(w[key] for key, _ in active)
    if not active or active_weight <= 0:
        return None
    return sum(score * w[key] for key, score in active) / active_weight


def score_summaries(summaries: Sequence[ProviderSummary], weights: Weights) -> List[ProviderSummary]:
    latencies = [s.avg_latency_ms for s in summaries if s.avg_latency_ms is not None]
    best_latency = min(latencies) if latencies else None
    costs = [s.cost_per_hour_usd for s in summaries if s.cost_per_hour_usd is not None]
    any_free = any(c == 0 for c in costs)
    positive = [c for c in costs if c > 0]
    lowest_positive = min(positive) if positive else None

    scored = []
    for s in summaries:
        scores = {
            "accuracy": accuracy_score(s.avg_wer),
            "latency": latency_score(s.avg_latency_ms, best_latency),
            "cost": cost_score(s.cost_per_hour_usd, any_free, lowest_positive),
            "dx": dx_score(s.integration_effort),
        }
        scored.append(replace(
            s,
            accuracy_score=scores["accuracy"],
            latency_score=scores["latency"],
            cost_score=scores["cost"],
            dx_score=scores["dx"],
            total_score=composite_total(scores, weights),
        ))
    return scored


# -----------------------
# Ranking
# -----------------------
def rank_summaries(summaries: Iterable[ProviderSummary]) -> List[ProviderSummary]:
    """
    Highest total first; undefined totals last; ties by higher accuracy.
    sorted() is stable, so remaining ties keep input order.
    """
    def key(s: ProviderSummary):
        return (
            s.total_score is None,
            -(s.total_score or 0.0),
            s.accuracy_score is None,
            -(s.accuracy_score or 0.0),
        )
    return sorted(summaries, key=key)


def summarize_provider_results(results: Sequence[SampleResult], providers: Sequence[Provider],
                               weights: Weights) -> List[ProviderSummary]:
    by_provider: Dict[str, List[SampleResult]] = {p.id: [] for p in providers}
    for r in results:
        if r.provider_id in by_provider:
            by_provider[r.provider_id].append(r)
    summaries = [aggregate_provider(p, by_provider[p.id]) for p in providers]
    return rank_summaries(score_summaries(summaries, weights))
