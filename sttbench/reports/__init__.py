"""
sttbench.reports

Pure formatting of a finished BenchmarkReport into JSON / CSV / Markdown.
"""

from .writers import write_reports  # noqa: F401

__all__ = ["write_reports"]
