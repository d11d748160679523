# providers/http.py
import mimetypes
import os
import threading
import time
from typing import Any, Callable, Optional

import requests

from sttbench.core.errors import MalformedResponse, MissingCredential, ProviderHttpError, Timeout
from sttbench.core.models import Provider
from sttbench.core.registry import TranscriptionAdapter, TranscriptionContext

BODY_EXCERPT = 400
POLL_S = 0.05

_AUDIO_MIME = {
    ".wav": "audio/wav",
    ".wave": "audio/wav",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".mp4": "audio/mp4",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".aac": "audio/aac",
}


def guess_mime(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext in _AUDIO_MIME:
        return _AUDIO_MIME[ext]
    mt, _ = mimetypes.guess_type(path)
    return mt or "application/octet-stream"


class RemoteHttpProvider(TranscriptionAdapter):
    """
    Shared plumbing for hosted STT APIs: credential lookup, a single POST
    bounded end to end by the call timeout, and mapping of transport/HTTP problems to
    adapter failures. One request per sample; no retries.
    """

    default_api_key_env: str = ""

    def api_key(self, provider: Provider, ctx: TranscriptionContext) -> str:
        env_name = provider.api_key_env or self.default_api_key_env
        key = ctx.secrets.get(env_name)
        if not key:
            raise MissingCredential(f"Missing environment variable {env_name}")
        return key

    def post(self, url: str, ctx: TranscriptionContext, **kwargs: Any) -> requests.Response:
        try:
            resp = self._bounded(lambda: requests.post(url, timeout=ctx.timeout_s, **kwargs), ctx)
        except requests.Timeout:
            raise Timeout(f"Request timed out after {ctx.timeout_ms}ms") from None
        except requests.RequestException as e:
            raise ProviderHttpError(f"Request failed: {e}") from None

        if not resp.ok:
            excerpt = (resp.text or "")[:BODY_EXCERPT]
            raise ProviderHttpError(f"HTTP {resp.status_code}: {excerpt}",
                                    status_code=resp.status_code, body_excerpt=excerpt)
        return resp

    @staticmethod
    def _bounded(fn: Callable[[], Any], ctx: TranscriptionContext) -> Any:
        """
        Run *fn* on a daemon thread and wait for it until the call deadline.
        requests only bounds connect and each socket read, so a server that
        trickles its body would otherwise hold the call open indefinitely.
        On timeout or cancel the thread is abandoned.
        """
        outcome: dict = {}
        done = threading.Event()

        def target() -> None:
            try:
                outcome["value"] = fn()
            except Exception as e:  # noqa: BLE001
                outcome["error"] = e
            finally:
                done.set()

        threading.Thread(target=target, name="sttbench-http", daemon=True).start()
        deadline = time.monotonic() + ctx.timeout_s
        while not done.wait(max(0.0, min(POLL_S, deadline - time.monotonic()))):
            ctx.check_cancelled()
            if time.monotonic() >= deadline:
                raise Timeout(f"Request timed out after {ctx.timeout_ms}ms")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["value"]

    @staticmethod
    def parse_json(resp: requests.Response) -> Any:
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            raise MalformedResponse(f"Response is not JSON: {resp.text[:BODY_EXCERPT]}") from None

    @staticmethod
    def require_text(value: Optional[Any], what: str) -> str:
        if not value or not isinstance(value, str):
            raise MalformedResponse(f"No transcript {what}")
        return value.strip()
