# worker/runner.py
import threading
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

import structlog
from tqdm import tqdm

from sttbench import providers as _providers  # noqa: F401
from sttbench.core.config import BenchmarkConfig
from sttbench.core.errors import CallCancelled, EmptyInputError
from sttbench.core.models import BenchmarkReport, Provider, Sample, SampleResult
from sttbench.core.registry import TranscriptionAdapter, TranscriptionContext, make_adapter
from sttbench.core.scoring import summarize_provider_results
from sttbench.datasets.loaders import dataset_base_path, load_dataset, load_providers
from sttbench.worker.exec_infer import run_parallel, run_sample, run_sequential
from sttbench.worker.plan import Task, build_tasks, cap_samples

logger = structlog.get_logger(__name__)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# -----------------------
# Main entrypoints
# -----------------------
def run_benchmark(
    providers: Sequence[Provider],
    samples: Sequence[Sample],
    config: BenchmarkConfig,
    secrets: Optional[Mapping[str, str]] = None,
    cancel_event: Optional[threading.Event] = None,
    base_path: Optional[str] = None,
    show_progress: bool = False,
) -> BenchmarkReport:
    """
    Drive every enabled provider over the (capped) sample list and return
    the ranked summary plus every per-sample result. Per-call failures are
    recorded as error rows; only empty inputs or an unknown provider type
    abort the run.
    """
    enabled = [p for p in providers if p.enabled]
    if not enabled:
        raise EmptyInputError("No enabled providers found. Set at least one provider with enabled=true.")
    samples = cap_samples(samples, config.max_samples)
    if not samples:
        raise EmptyInputError("No samples found in dataset.")

    # resolve every adapter before the first call so a bad type fails fast
    adapters: Dict[str, TranscriptionAdapter] = {p.id: make_adapter(p) for p in enabled}
    ctx = TranscriptionContext(
        dataset_base_path=base_path or dataset_base_path(config.dataset),
        timeout_ms=config.timeout_ms,
        secrets=secrets,
        cancel_event=cancel_event,
    )
    tasks = build_tasks(enabled, adapters, samples)

    logger.info(
        "benchmark_started",
        samples=len(samples),
        providers=len(enabled),
        timeout_ms=config.timeout_ms,
        concurrency=config.concurrency,
    )

    bar = tqdm(total=len(tasks), desc="Transcribe", disable=not show_progress)

    def infer_one(task: Task):
        try:
            result = run_sample(task.adapter, task.provider, task.sample, ctx)
        except CallCancelled:
            logger.info("sample_abandoned", provider_id=task.provider.id, sample_id=task.sample.id)
            return None
        bar.update(1)
        return task.index, result

    try:
        if config.concurrency > 1:
            indexed = run_parallel(tasks, infer_one, config.concurrency, cancel_event=cancel_event)
        else:
            indexed = run_sequential(tasks, infer_one, cancel_event=cancel_event)
    finally:
        bar.close()

    # completion order -> plan order; abandoned calls come back as None
    finished = [pair for pair in indexed if pair is not None]
    sample_results: List[SampleResult] = [r for _, r in sorted(finished, key=lambda pair: pair[0])]
    cancelled = cancel_event is not None and cancel_event.is_set()
    if cancelled:
        logger.warning("benchmark_cancelled", completed=len(sample_results), planned=len(tasks))

    summary = summarize_provider_results(sample_results, enabled, config.weights)
    metadata = {
        "generatedAt": _iso_now(),
        "datasetPath": config.dataset,
        "providersPath": config.providers,
        "outDir": config.out_dir,
        "sampleCount": len(samples),
        "providerCount": len(enabled),
        "timeoutMs": config.timeout_ms,
        "weights": config.weights.model_dump(),
        "concurrency": config.concurrency,
        "cancelled": cancelled,
    }
    logger.info("benchmark_finished", results=len(sample_results), cancelled=cancelled)
    return BenchmarkReport(metadata=metadata, summary=summary, sample_results=sample_results)


def run_benchmark_from_paths(
    config: BenchmarkConfig,
    secrets: Optional[Mapping[str, str]] = None,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = False,
) -> BenchmarkReport:
    """Load both input files (load errors abort before any call), then run."""
    samples = load_dataset(config.dataset)
    providers = load_providers(config.providers)
    logger.info("inputs_loaded", dataset=config.dataset, samples=len(samples), providers=len(providers))
    return run_benchmark(
        providers,
        samples,
        config,
        secrets=secrets,
        cancel_event=cancel_event,
        base_path=dataset_base_path(config.dataset),
        show_progress=show_progress,
    )
