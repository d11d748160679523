# reports/writers.py
import csv
import io
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sttbench.core.models import SUMMARY_COLUMNS, BenchmarkReport


def _fmt(value: Any, digits: int = 3) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN
        return ""
    return f"{float(value):.{digits}f}"


def build_summary_csv(report: BenchmarkReport) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(list(SUMMARY_COLUMNS))
    for row in report.summary:
        d = row.to_dict()
        writer.writerow(["" if d[col] is None else d[col] for col in SUMMARY_COLUMNS])
    return buf.getvalue()


def build_summary_markdown(report: BenchmarkReport) -> str:
    md = report.metadata
    w = md.get("weights", {})
    lines = [
        "# STT Benchmark Summary",
        "",
        f"Generated at: {md.get('generatedAt', '')}",
        f"Dataset: {md.get('datasetPath', '')}",
        f"Providers: {md.get('providersPath', '')}",
        f"Samples: {md.get('sampleCount', '')}",
        f"Weights: accuracy={w.get('accuracy')}, latency={w.get('latency')}, cost={w.get('cost')}, dx={w.get('dx')}",
    ]
    if md.get("cancelled"):
        lines.append("Run was cancelled; figures cover completed samples only.")
    lines += [
        "",
        "| Provider | Type | Success % | Avg WER | Avg Latency (ms) | Cost/hr USD | DX effort (1=easy) | Score |",
        "|---|---|---:|---:|---:|---:|---:|---:|",
    ]
    for row in report.summary:
        effort = "" if row.integration_effort is None else str(row.integration_effort)
        lines.append(
            f"| {row.provider_id} | {row.provider_type} | {_fmt(row.success_rate_pct, 1)} | {_fmt(row.avg_wer)} "
            f"| {_fmt(row.avg_latency_ms, 1)} | {_fmt(row.cost_per_hour_usd, 4)} | {effort} | {_fmt(row.total_score, 2)} |"
        )
    lines.append("")
    return "\n".join(lines)


def write_reports(report: BenchmarkReport, out_dir: str, timestamp: Optional[str] = None) -> Dict[str, str]:
    """Write the JSON detail, CSV summary and Markdown summary; return their paths."""
    os.makedirs(out_dir, exist_ok=True)
    ts = timestamp or datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    paths = {
        "json": os.path.join(out_dir, f"stt-benchmark-{ts}.json"),
        "csv": os.path.join(out_dir, f"stt-summary-{ts}.csv"),
        "markdown": os.path.join(out_dir, f"stt-summary-{ts}.md"),
    }
    with open(paths["json"], "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
        f.write("\n")
    with open(paths["csv"], "w", encoding="utf-8", newline="") as f:
        f.write(build_summary_csv(report))
    with open(paths["markdown"], "w", encoding="utf-8") as f:
        f.write(build_summary_markdown(report))
    return paths
