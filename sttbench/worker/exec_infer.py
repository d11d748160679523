# worker/exec_infer.py
import threading
import time
import concurrent.futures as cf
from typing import Any, Callable, Iterable, List, Optional

import structlog

from sttbench.core.errors import AdapterFailure, CallCancelled
from sttbench.core.metrics import character_error_rate, word_error_rate
from sttbench.core.models import STATUS_ERROR, STATUS_OK, Provider, Sample, SampleResult
from sttbench.core.registry import TranscriptionAdapter, TranscriptionContext

logger = structlog.get_logger(__name__)

ERROR_MESSAGE_LIMIT = 500


def _truncate(message: str, limit: int = ERROR_MESSAGE_LIMIT) -> str:
    return message if len(message) <= limit else message[: limit - 3] + "..."


def run_sample(adapter: TranscriptionAdapter, provider: Provider, sample: Sample,
               ctx: TranscriptionContext) -> SampleResult:
    """
    One provider x one sample. Latency is wall-clock around the adapter
    call and is recorded on failure too. Never retries. Only CallCancelled
    escapes, since an abandoned call has no result.
    """
    tags = sorted(getattr(sample, "tags", None) or [])
    reference = getattr(sample, "reference", None)
    sample_id = getattr(sample, "id", None) or ""

    t0 = time.perf_counter()
    try:
        transcript = adapter.transcribe(provider, sample, ctx)
    except CallCancelled:
        raise
    except AdapterFailure as e:
        message = str(e)
    except Exception as e:  # noqa: BLE001
        logger.warning("adapter_unexpected_error", provider_id=provider.id, sample_id=sample_id, exc_info=True)
        message = f"{type(e).__name__}: {e}"
    else:
        latency_ms = (time.perf_counter() - t0) * 1000.0
        wer = word_error_rate(reference, transcript)
        cer = character_error_rate(reference, transcript)
        logger.info("sample_ok", provider_id=provider.id, sample_id=sample_id,
                    wer=round(wer, 3), cer=round(cer, 3), latency_ms=round(latency_ms, 1))
        return SampleResult(
            provider_id=provider.id, sample_id=sample_id, status=STATUS_OK,
            latency_ms=latency_ms, reference=reference, tags=tags,
            wer=wer, cer=cer, transcript=transcript,
        )

    latency_ms = (time.perf_counter() - t0) * 1000.0
    logger.info("sample_error", provider_id=provider.id, sample_id=sample_id,
                error=message, latency_ms=round(latency_ms, 1))
    return SampleResult(
        provider_id=provider.id, sample_id=sample_id, status=STATUS_ERROR,
        latency_ms=latency_ms, reference=reference if isinstance(reference, str) else "",
        tags=tags, error=_truncate(message),
    )


def run_sequential(
    tasks: Iterable[Any],
    fn: Callable[[Any], Any],
    cancel_event: Optional[threading.Event] = None,
) -> List[Any]:
    results: List[Any] = []
    for t in tasks:
        if cancel_event is not None and cancel_event.is_set():
            break
        results.append(fn(t))
    return results


def run_parallel(
    tasks: Iterable[Any],
    fn: Callable[[Any], Any],
    concurrency: int,
    cancel_event: Optional[threading.Event] = None,
) -> List[Any]:
    """
    Runs tasks with bounded concurrency. If cancel_event is set,
    pending futures are cancelled and we return what finished so far.
    Results come back in completion order.
    """
    results: List[Any] = []
    ex = cf.ThreadPoolExecutor(max_workers=concurrency)
    try:
        pending = {ex.submit(fn, t) for t in tasks}
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                # cancel everything that hasn't started
                for fut in pending:
                    fut.cancel()
                break
            done, pending = cf.wait(pending, timeout=0.2, return_when=cf.FIRST_COMPLETED)
            for fut in done:
                if not fut.cancelled():
                    results.append(fut.result())
    finally:
        # in-flight calls are abandoned on cancel rather than waited for
        cancelled = cancel_event is not None and cancel_event.is_set()
        ex.shutdown(wait=not cancelled, cancel_futures=True)
    return results
