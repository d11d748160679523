"""
sttbench.providers

Provider adapters. Importing this package registers every built-in provider
type (datasetHypothesis, command, openai, groq, deepgram) with the registry.
"""

from . import command, dataset_hypothesis, deepgram, openai_compatible  # noqa: F401

__all__ = ["command", "dataset_hypothesis", "deepgram", "openai_compatible"]
