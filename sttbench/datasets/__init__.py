"""
sttbench.datasets

Loaders for the JSONL dataset and the JSON provider list.
"""

from .loaders import dataset_base_path, load_dataset, load_providers  # noqa: F401

__all__ = ["dataset_base_path", "load_dataset", "load_providers"]
