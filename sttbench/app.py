# sttbench/app.py
import argparse
import os
import signal
import sys
import threading

import pydantic
import structlog
from dotenv import load_dotenv

from sttbench.core.config import (
    DEFAULT_DATASET, DEFAULT_OUT_DIR, DEFAULT_PROVIDERS, DEFAULT_TIMEOUT_MS,
    BenchmarkConfig, parse_weights,
)
from sttbench.core.errors import BenchmarkError
from sttbench.core.logging import configure_logging
from sttbench.reports.writers import write_reports
from sttbench.worker.runner import run_benchmark_from_paths

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="sttbench",
        description="Benchmark speech-to-text providers against a ground-truth dataset.",
        epilog="Provider types: datasetHypothesis, command, openai, groq, deepgram",
    )
    ap.add_argument("--dataset", default=DEFAULT_DATASET, help="JSONL dataset file")
    ap.add_argument("--providers", default=DEFAULT_PROVIDERS, help="Provider config JSON file")
    ap.add_argument("--out-dir", default=DEFAULT_OUT_DIR, help="Output directory")
    ap.add_argument("--max-samples", type=int, default=None, help="Limit number of samples")
    ap.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS,
                    help="Timeout per transcription call")
    ap.add_argument("--concurrency", type=int, default=1, help="Parallel transcription calls")
    ap.add_argument("--weights", default=None,
                    help='Weighted score config, e.g. "accuracy=40,latency=25,cost=20,dx=15"')
    ap.add_argument("--env-file", default=".env", help="dotenv file with provider credentials")
    ap.add_argument("--log-level", default="INFO")
    ap.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    ap.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    return ap


def config_from_args(args: argparse.Namespace) -> BenchmarkConfig:
    try:
        return BenchmarkConfig(
            dataset=os.path.abspath(args.dataset),
            providers=os.path.abspath(args.providers),
            out_dir=os.path.abspath(args.out_dir),
            max_samples=args.max_samples,
            timeout_ms=args.timeout_ms,
            concurrency=args.concurrency,
            weights=parse_weights(args.weights),
        )
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first["loc"])
        raise BenchmarkError(f"Invalid option {loc}: {first['msg']}") from None


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_logs=args.json_logs)
    if args.env_file and os.path.exists(args.env_file):
        load_dotenv(args.env_file)

    cancel_event = threading.Event()

    def _handle_sig(_sig, _frame):
        if cancel_event.is_set():
            # second Ctrl+C: stop waiting for the partial report
            raise KeyboardInterrupt
        cancel_event.set()

    # Handle Ctrl+C and terminate for the duration of the run only
    signums = [signal.SIGINT] + ([signal.SIGTERM] if hasattr(signal, "SIGTERM") else [])
    previous = {s: signal.signal(s, _handle_sig) for s in signums}

    try:
        cfg = config_from_args(args)
        report = run_benchmark_from_paths(
            cfg,
            secrets=dict(os.environ),
            cancel_event=cancel_event,
            show_progress=not args.no_progress,
        )
        paths = write_reports(report, cfg.out_dir)
    except BenchmarkError as e:
        print(f"STT benchmark failed: {e}", file=sys.stderr)
        return 1
    finally:
        for s, handler in previous.items():
            if handler is not None:
                signal.signal(s, handler)

    print("\nBenchmark complete.")
    for rank, row in enumerate(report.summary, start=1):
        score = "n/a" if row.total_score is None else f"{row.total_score:.2f}"
        print(f"  {rank}. {row.provider_id} ({row.provider_type}) score={score} "
              f"ok={row.ok_count}/{row.total_samples}")
    print(f"- Detailed JSON: {paths['json']}")
    print(f"- Summary CSV:   {paths['csv']}")
    print(f"- Summary MD:    {paths['markdown']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
