# providers/openai_compatible.py
import io
import os
from typing import Optional

from sttbench.core.models import Provider, Sample
from sttbench.core.registry import TranscriptionContext, register_provider
from sttbench.providers.http import RemoteHttpProvider, guess_mime


@register_provider("openai")
class OpenAICompatibleProvider(RemoteHttpProvider):
    """Any endpoint speaking the OpenAI /audio/transcriptions multipart API."""

    default_endpoint = "https://api.openai.com/v1/audio/transcriptions"
    default_model = "whisper-1"
    default_api_key_env = "OPENAI_API_KEY"

    def _transcribe(self, provider: Provider, sample: Sample, ctx: TranscriptionContext,
                    audio_path: Optional[str]) -> str:
        api_key = self.api_key(provider, ctx)

        with open(audio_path, "rb") as f:
            audio_bytes = f.read()

        # Only send params that the endpoint expects; strings only in 'data'
        data = {"model": provider.model or self.default_model}
        if provider.language:
            data["language"] = provider.language
        if provider.prompt:
            data["prompt"] = provider.prompt
        if provider.temperature is not None:
            data["temperature"] = str(provider.temperature)

        files = {"file": (os.path.basename(audio_path), io.BytesIO(audio_bytes), guess_mime(audio_path))}
        resp = self.post(
            provider.endpoint or self.default_endpoint,
            ctx,
            headers={"Authorization": f"Bearer {api_key}"},
            files=files,
            data=data,
        )
        j = self.parse_json(resp)
        text = (j.get("text") or j.get("transcript")) if isinstance(j, dict) else None
        return self.require_text(text, "text returned from provider")


@register_provider("groq")
class GroqProvider(OpenAICompatibleProvider):
    default_endpoint = "https://api.groq.com/openai/v1/audio/transcriptions"
    default_model = "whisper-large-v3-turbo"
    default_api_key_env = "GROQ_API_KEY"
