"""
sttbench

Speech-to-text provider benchmark: core metrics and scoring, provider
adapters, loaders, the benchmark worker and report writers.
Avoid importing heavy modules here. Consumers should import submodules directly,
e.g. `from sttbench.worker.runner import run_benchmark`.
"""

__version__ = "0.1.0"

__all__ = ["core", "providers", "datasets", "reports", "worker"]
