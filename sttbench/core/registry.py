"""
Provider adapter interface and registry.

Every provider kind (``datasetHypothesis``, ``command``, ``openai``, ...)
is a :class:`TranscriptionAdapter` subclass registered under the ``type``
string used in the provider config. The orchestrator looks adapters up by
that string, so adding a provider kind never touches the dispatch code.
"""

from __future__ import annotations

import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional

import structlog

from .errors import AudioFileNotFound, CallCancelled, InvalidSample, ValidationError
from .models import Provider, Sample

logger = structlog.get_logger(__name__)


class TranscriptionContext:
    """Per-run inputs shared by every adapter call.

    Args:
        dataset_base_path: Directory relative ``audioFile`` paths resolve against.
        timeout_ms: Upper bound for one adapter call.
        secrets: Credentials by name (usually the process environment,
            injected by the caller rather than read globally).
        cancel_event: Set when the run is cancelled. Adapters poll it while a
            call is in flight and raise CallCancelled.
    """

    def __init__(self, dataset_base_path: str, timeout_ms: int, secrets: Optional[Mapping[str, str]] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.dataset_base_path = dataset_base_path
        self.timeout_ms = timeout_ms
        self.secrets: Mapping[str, str] = secrets or {}
        self.cancel_event = cancel_event

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def check_cancelled(self) -> None:
        if self.cancelled:
            raise CallCancelled("Run cancelled while the call was in flight")


def ensure_sample_fields(sample: Sample) -> None:
    """Raise InvalidSample unless ``id`` and ``reference`` are usable strings."""
    sample_id = getattr(sample, "id", None)
    if not sample_id or not isinstance(sample_id, str):
        raise InvalidSample("Sample is missing required string field: id")
    if not isinstance(getattr(sample, "reference", None), str):
        raise InvalidSample(f'Sample "{sample_id}" is missing required string field: reference')


def resolve_audio_path(sample: Sample, ctx: TranscriptionContext) -> str:
    """Resolve ``sample.audio_file`` and make sure it exists before any I/O."""
    audio_file = getattr(sample, "audio_file", None)
    if not audio_file or not isinstance(audio_file, str):
        raise InvalidSample(f'Sample "{sample.id}" is missing required string field: audioFile')
    path = audio_file if os.path.isabs(audio_file) else os.path.join(ctx.dataset_base_path, audio_file)
    path = os.path.normpath(path)
    if not os.path.isfile(path):
        raise AudioFileNotFound(f"Audio file not found: {path}")
    return path


class TranscriptionAdapter(ABC):
    """Base class every provider kind implements.

    :meth:`transcribe` validates the sample and resolves its audio once,
    then hands over to :meth:`_transcribe`. Subclasses that read embedded
    transcripts set ``requires_audio = False``.
    """

    requires_audio: bool = True

    def transcribe(self, provider: Provider, sample: Sample, ctx: TranscriptionContext) -> str:
        """Return the transcript for *sample*, or raise an AdapterFailure."""
        ensure_sample_fields(sample)
        audio_path = resolve_audio_path(sample, ctx) if self.requires_audio else None
        return self._transcribe(provider, sample, ctx, audio_path)

    @abstractmethod
    def _transcribe(
        self,
        provider: Provider,
        sample: Sample,
        ctx: TranscriptionContext,
        audio_path: Optional[str],
    ) -> str:
        ...  # pragma: no cover


# Global mapping of provider type -> adapter class.
_REGISTRY: Dict[str, type[TranscriptionAdapter]] = {}


def register_provider(name: str):
    """Class decorator registering an adapter under provider ``type`` *name*."""

    def decorator(cls: type[TranscriptionAdapter]) -> type[TranscriptionAdapter]:
        if not (isinstance(cls, type) and issubclass(cls, TranscriptionAdapter)):
            raise TypeError(f"{cls!r} is not a subclass of TranscriptionAdapter")
        _REGISTRY[name] = cls
        logger.debug("provider_registered", provider_type=name)
        return cls

    return decorator


def get_provider_class(name: str) -> type[TranscriptionAdapter]:
    if name not in _REGISTRY:
        raise ValidationError(f'Unsupported provider type "{name}". Available: {list_providers()}')
    return _REGISTRY[name]


def make_adapter(provider: Provider) -> TranscriptionAdapter:
    try:
        return get_provider_class(provider.type)()
    except ValidationError as e:
        raise ValidationError(f'Provider "{provider.id}": {e}') from None


def list_providers() -> List[str]:
    return sorted(_REGISTRY)


def clear_registry() -> None:
    """Remove all registered adapters (useful in tests)."""
    _REGISTRY.clear()
