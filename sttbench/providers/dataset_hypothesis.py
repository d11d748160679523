# providers/dataset_hypothesis.py
from typing import Optional

from sttbench.core.errors import MissingHypothesis
from sttbench.core.models import Provider, Sample
from sttbench.core.registry import TranscriptionAdapter, TranscriptionContext, register_provider


@register_provider("datasetHypothesis")
class DatasetHypothesisProvider(TranscriptionAdapter):
    """Reads a pre-computed transcript from ``sample.hypotheses``."""

    requires_audio = False

    def _transcribe(self, provider: Provider, sample: Sample, ctx: TranscriptionContext,
                    audio_path: Optional[str]) -> str:
        field = provider.field or provider.id
        transcript = sample.hypotheses.get(field)
        if not transcript or not isinstance(transcript, str):
            raise MissingHypothesis(f'Sample "{sample.id}" is missing hypotheses["{field}"]')
        return transcript.strip()
