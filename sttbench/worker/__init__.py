"""
sttbench.worker

Sample runner, task planning and the benchmark orchestrator.
"""

from .runner import run_benchmark, run_benchmark_from_paths  # noqa: F401

__all__ = ["run_benchmark", "run_benchmark_from_paths"]
