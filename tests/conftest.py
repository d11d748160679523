"""Shared fixtures for sttbench tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

import sttbench.providers  # noqa: F401
from sttbench.core import registry
from sttbench.core.models import Provider, Sample
from sttbench.core.registry import TranscriptionContext


def make_sample(**overrides: Any) -> Sample:
    data: dict[str, Any] = {"id": "s1", "reference": "hello world"}
    data.update(overrides)
    return Sample.model_validate(data)


def make_provider(**overrides: Any) -> Provider:
    data: dict[str, Any] = {"id": "p1", "type": "datasetHypothesis"}
    data.update(overrides)
    return Provider.model_validate(data)


@pytest.fixture()
def audio_file(tmp_path: Path) -> Path:
    """A tiny fake WAV file next to the dataset base path."""
    path = tmp_path / "clip.wav"
    path.write_bytes(b"RIFF\x00\x00\x00\x00WAVEfmt ")
    return path


@pytest.fixture()
def ctx(tmp_path: Path) -> TranscriptionContext:
    return TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=5_000, secrets={})


@pytest.fixture()
def isolated_registry():
    """Snapshot the provider registry and restore it after the test."""
    saved = dict(registry._REGISTRY)
    yield registry._REGISTRY
    registry._REGISTRY.clear()
    registry._REGISTRY.update(saved)
