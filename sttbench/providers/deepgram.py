# providers/deepgram.py
from typing import Optional

from sttbench.core.models import Provider, Sample
from sttbench.core.registry import TranscriptionContext, register_provider
from sttbench.providers.http import RemoteHttpProvider, guess_mime


def _flag(value: Optional[bool], default: bool = True) -> str:
    return "true" if (default if value is None else value) else "false"


@register_provider("deepgram")
class DeepgramProvider(RemoteHttpProvider):
    """Deepgram pre-recorded /v1/listen; audio is posted as the raw body."""

    default_endpoint = "https://api.deepgram.com/v1/listen"
    default_model = "nova-3"
    default_api_key_env = "DEEPGRAM_API_KEY"

    def _transcribe(self, provider: Provider, sample: Sample, ctx: TranscriptionContext,
                    audio_path: Optional[str]) -> str:
        api_key = self.api_key(provider, ctx)

        params = {
            "model": provider.model or self.default_model,
            "smart_format": _flag(provider.smart_format),
            "punctuate": _flag(provider.punctuate),
        }
        if provider.language:
            params["language"] = provider.language

        with open(audio_path, "rb") as f:
            body = f.read()

        resp = self.post(
            provider.endpoint or self.default_endpoint,
            ctx,
            params=params,
            headers={
                "Authorization": f"Token {api_key}",
                "Content-Type": guess_mime(audio_path),
            },
            data=body,
        )
        j = self.parse_json(resp)
        try:
            text = j["results"]["channels"][0]["alternatives"][0]["transcript"]
        except (KeyError, IndexError, TypeError):
            text = None
        return self.require_text(text, "returned by Deepgram")
