"""
Tests for the built-in provider adapters.

Remote providers are exercised with ``requests.post`` patched; the command
provider runs real short shell commands.
"""

from __future__ import annotations

import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from sttbench.core.errors import (
    CallCancelled,
    CommandFailed,
    EmptyOutput,
    MalformedResponse,
    MissingCredential,
    MissingHypothesis,
    ProviderHttpError,
    Timeout,
)
from sttbench.core.registry import TranscriptionContext
from sttbench.providers.command import CommandProvider, fill_template
from sttbench.providers.dataset_hypothesis import DatasetHypothesisProvider
from sttbench.providers.deepgram import DeepgramProvider
from sttbench.providers.http import guess_mime
from sttbench.providers.openai_compatible import GroqProvider, OpenAICompatibleProvider

from conftest import make_provider, make_sample

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


# ── Helpers ──────────────────────────────────────────────────


def _response(status: int = 200, json_body=None, text: str | None = None) -> MagicMock:
    resp = MagicMock(name="Response")
    resp.status_code = status
    resp.ok = status < 400
    if text is None:
        text = "" if json_body is None else "{...}"
    resp.text = text
    resp.content = text.encode()
    if json_body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_body
    return resp


def _ctx_with(tmp_path: Path, **secrets: str) -> TranscriptionContext:
    return TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=2_000, secrets=secrets)


# ── datasetHypothesis ────────────────────────────────────────


class TestDatasetHypothesisProvider:
    def test_reads_by_provider_id(self, ctx) -> None:
        sample = make_sample(hypotheses={"p1": " hello world "})
        assert DatasetHypothesisProvider().transcribe(make_provider(), sample, ctx) == "hello world"

    def test_custom_field(self, ctx) -> None:
        sample = make_sample(hypotheses={"other": "hi"})
        provider = make_provider(field="other")
        assert DatasetHypothesisProvider().transcribe(provider, sample, ctx) == "hi"

    def test_no_audio_needed(self, ctx) -> None:
        sample = make_sample(audioFile="does/not/exist.wav", hypotheses={"p1": "x"})
        assert DatasetHypothesisProvider().transcribe(make_provider(), sample, ctx) == "x"

    @pytest.mark.parametrize("hyps", [{}, {"p1": 42}, {"p1": ""}, {"p1": None}])
    def test_missing(self, ctx, hyps) -> None:
        with pytest.raises(MissingHypothesis, match='hypotheses\\["p1"\\]'):
            DatasetHypothesisProvider().transcribe(make_provider(), make_sample(hypotheses=hyps), ctx)


# ── command ──────────────────────────────────────────────────


class TestFillTemplate:
    def test_placeholders(self) -> None:
        out = fill_template("run {{audioFile}} --id {{sampleId}} {{unknown}}",
                            {"audioFile": "/a/b.wav", "sampleId": "s1"})
        assert out == "run /a/b.wav --id s1 "


@posix_only
class TestCommandProvider:
    def _provider(self, command: str):
        return make_provider(id="cmd", type="command", command=command)

    def test_stdout_is_transcript(self, ctx, audio_file) -> None:
        sample = make_sample(audioFile="clip.wav")
        out = CommandProvider().transcribe(self._provider("echo '  {{audioFileName}} {{sampleId}}  '"), sample, ctx)
        assert out == "clip.wav s1"

    def test_audio_path_is_resolved(self, ctx, audio_file) -> None:
        sample = make_sample(audioFile="clip.wav")
        out = CommandProvider().transcribe(self._provider("echo {{audioFile}}"), sample, ctx)
        assert out == str(audio_file)

    def test_non_zero_exit(self, ctx, audio_file) -> None:
        with pytest.raises(CommandFailed, match="code 3: boom"):
            CommandProvider().transcribe(self._provider("echo boom >&2; exit 3"),
                                         make_sample(audioFile="clip.wav"), ctx)

    def test_empty_output(self, ctx, audio_file) -> None:
        with pytest.raises(EmptyOutput):
            CommandProvider().transcribe(self._provider("printf '   '"), make_sample(audioFile="clip.wav"), ctx)

    def test_missing_command_setting(self, ctx, audio_file) -> None:
        with pytest.raises(CommandFailed, match='must define "command"'):
            CommandProvider().transcribe(make_provider(type="command"), make_sample(audioFile="clip.wav"), ctx)

    def test_timeout_is_bounded(self, tmp_path, audio_file) -> None:
        ctx = TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=300)
        t0 = time.perf_counter()
        with pytest.raises(Timeout, match="300ms"):
            CommandProvider().transcribe(self._provider("sleep 5; echo late"),
                                         make_sample(audioFile="clip.wav"), ctx)
        assert time.perf_counter() - t0 < 2.5

    def test_invalid_utf8_is_replaced(self, ctx, audio_file) -> None:
        out = CommandProvider().transcribe(self._provider(r"printf 'caf\351 ok'"),
                                           make_sample(audioFile="clip.wav"), ctx)
        assert out == "caf\ufffd ok"

    def test_cancel_kills_running_command(self, tmp_path, audio_file) -> None:
        cancel = threading.Event()
        ctx = TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=10_000, cancel_event=cancel)
        marker = tmp_path / "finished"
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        t0 = time.perf_counter()
        try:
            with pytest.raises(CallCancelled):
                CommandProvider().transcribe(self._provider(f"sleep 3; touch {marker}; echo late"),
                                             make_sample(audioFile="clip.wav"), ctx)
        finally:
            timer.cancel()
        assert time.perf_counter() - t0 < 2.0
        time.sleep(3.2)
        assert not marker.exists()


# ── openai / groq ────────────────────────────────────────────


class TestOpenAICompatibleProvider:
    def test_missing_credential(self, tmp_path, audio_file) -> None:
        with pytest.raises(MissingCredential, match="OPENAI_API_KEY"):
            OpenAICompatibleProvider().transcribe(make_provider(type="openai"),
                                                  make_sample(audioFile="clip.wav"), _ctx_with(tmp_path))

    def test_custom_key_name(self, tmp_path, audio_file) -> None:
        provider = make_provider(type="openai", apiKeyEnv="MY_KEY")
        with pytest.raises(MissingCredential, match="MY_KEY"):
            OpenAICompatibleProvider().transcribe(provider, make_sample(audioFile="clip.wav"),
                                                  _ctx_with(tmp_path, OPENAI_API_KEY="k"))

    def test_success_request_shape(self, tmp_path, audio_file) -> None:
        provider = make_provider(type="openai", language="en", prompt="names", temperature=0)
        with patch("sttbench.providers.http.requests.post",
                   return_value=_response(json_body={"text": " Hello world "})) as post:
            out = OpenAICompatibleProvider().transcribe(provider, make_sample(audioFile="clip.wav"),
                                                        _ctx_with(tmp_path, OPENAI_API_KEY="sk-test"))
        assert out == "Hello world"
        args, kwargs = post.call_args
        assert args[0] == "https://api.openai.com/v1/audio/transcriptions"
        assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}
        assert kwargs["timeout"] == pytest.approx(2.0)
        assert kwargs["data"] == {"model": "whisper-1", "language": "en", "prompt": "names", "temperature": "0.0"}
        name, _, mime = kwargs["files"]["file"]
        assert (name, mime) == ("clip.wav", "audio/wav")

    def test_transcript_field_fallback(self, tmp_path, audio_file) -> None:
        with patch("sttbench.providers.http.requests.post",
                   return_value=_response(json_body={"transcript": "hi"})):
            out = OpenAICompatibleProvider().transcribe(make_provider(type="openai"),
                                                        make_sample(audioFile="clip.wav"),
                                                        _ctx_with(tmp_path, OPENAI_API_KEY="k"))
        assert out == "hi"

    def test_groq_defaults(self, tmp_path, audio_file) -> None:
        with patch("sttbench.providers.http.requests.post",
                   return_value=_response(json_body={"text": "ok"})) as post:
            GroqProvider().transcribe(make_provider(type="groq"), make_sample(audioFile="clip.wav"),
                                      _ctx_with(tmp_path, GROQ_API_KEY="gsk"))
        args, kwargs = post.call_args
        assert args[0] == "https://api.groq.com/openai/v1/audio/transcriptions"
        assert kwargs["data"]["model"] == "whisper-large-v3-turbo"

    def test_http_error(self, tmp_path, audio_file) -> None:
        body = "x" * 1000
        with patch("sttbench.providers.http.requests.post", return_value=_response(status=429, text=body)):
            with pytest.raises(ProviderHttpError) as exc:
                OpenAICompatibleProvider().transcribe(make_provider(type="openai"),
                                                      make_sample(audioFile="clip.wav"),
                                                      _ctx_with(tmp_path, OPENAI_API_KEY="k"))
        assert exc.value.status_code == 429
        assert len(exc.value.body_excerpt) == 400
        assert str(exc.value).startswith("ProviderHttpError: HTTP 429")

    def test_timeout(self, tmp_path, audio_file) -> None:
        with patch("sttbench.providers.http.requests.post", side_effect=requests.ReadTimeout("slow")):
            with pytest.raises(Timeout, match="2000ms"):
                OpenAICompatibleProvider().transcribe(make_provider(type="openai"),
                                                      make_sample(audioFile="clip.wav"),
                                                      _ctx_with(tmp_path, OPENAI_API_KEY="k"))

    def test_connection_error(self, tmp_path, audio_file) -> None:
        with patch("sttbench.providers.http.requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ProviderHttpError, match="refused"):
                OpenAICompatibleProvider().transcribe(make_provider(type="openai"),
                                                      make_sample(audioFile="clip.wav"),
                                                      _ctx_with(tmp_path, OPENAI_API_KEY="k"))

    @pytest.mark.parametrize(
        "resp",
        [_response(json_body={"text": 5}), _response(json_body={}), _response(text="<html>")],
    )
    def test_malformed(self, tmp_path, audio_file, resp) -> None:
        with patch("sttbench.providers.http.requests.post", return_value=resp):
            with pytest.raises(MalformedResponse):
                OpenAICompatibleProvider().transcribe(make_provider(type="openai"),
                                                      make_sample(audioFile="clip.wav"),
                                                      _ctx_with(tmp_path, OPENAI_API_KEY="k"))


# ── deepgram ─────────────────────────────────────────────────


def _deepgram_body(transcript: str = "hello world") -> dict:
    return {"results": {"channels": [{"alternatives": [{"transcript": transcript}]}]}}


class TestDeepgramProvider:
    def test_success_request_shape(self, tmp_path, audio_file) -> None:
        provider = make_provider(type="deepgram", language="en", punctuate=False)
        with patch("sttbench.providers.http.requests.post",
                   return_value=_response(json_body=_deepgram_body())) as post:
            out = DeepgramProvider().transcribe(provider, make_sample(audioFile="clip.wav"),
                                                _ctx_with(tmp_path, DEEPGRAM_API_KEY="dg"))
        assert out == "hello world"
        args, kwargs = post.call_args
        assert args[0] == "https://api.deepgram.com/v1/listen"
        assert kwargs["params"] == {"model": "nova-3", "smart_format": "true", "punctuate": "false",
                                    "language": "en"}
        assert kwargs["headers"]["Authorization"] == "Token dg"
        assert kwargs["headers"]["Content-Type"] == "audio/wav"
        assert kwargs["data"] == audio_file.read_bytes()

    def test_missing_credential(self, tmp_path, audio_file) -> None:
        with pytest.raises(MissingCredential, match="DEEPGRAM_API_KEY"):
            DeepgramProvider().transcribe(make_provider(type="deepgram"), make_sample(audioFile="clip.wav"),
                                          _ctx_with(tmp_path))

    @pytest.mark.parametrize("body", [{}, {"results": {"channels": []}}, _deepgram_body("")])
    def test_malformed(self, tmp_path, audio_file, body) -> None:
        with patch("sttbench.providers.http.requests.post", return_value=_response(json_body=body)):
            with pytest.raises(MalformedResponse, match="Deepgram"):
                DeepgramProvider().transcribe(make_provider(type="deepgram"), make_sample(audioFile="clip.wav"),
                                              _ctx_with(tmp_path, DEEPGRAM_API_KEY="dg"))


class TestGuessMime:
    @pytest.mark.parametrize(
        ("path", "mime"),
        [("a.wav", "audio/wav"), ("b.MP3", "audio/mpeg"), ("c.m4a", "audio/mp4"), ("d.unknownext", "application/octet-stream")],
    )
    def test_known_extensions(self, path: str, mime: str) -> None:
        assert guess_mime(path) == mime


# ── wall-clock bound against a real server ───────────────────


class _TrickleHandler(BaseHTTPRequestHandler):
    """Answers 200 with a JSON body sent one byte at a time."""

    body = b'{"text": "hi there"}'
    delay_s = 0.15

    def do_POST(self) -> None:  # noqa: N802
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(self.body)))
            self.end_headers()
            for i in range(len(self.body)):
                self.wfile.write(self.body[i:i + 1])
                self.wfile.flush()
                time.sleep(self.delay_s)
        except OSError:
            pass

    def log_message(self, format, *args) -> None:  # noqa: A002
        pass


@pytest.fixture()
def trickle_server(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TrickleHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/v1/audio/transcriptions"
    server.shutdown()
    server.server_close()


class TestRemoteDeadline:
    def test_slow_body_times_out(self, tmp_path, audio_file, trickle_server) -> None:
        provider = make_provider(type="openai", endpoint=trickle_server)
        ctx = TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=1_000,
                                   secrets={"OPENAI_API_KEY": "k"})
        t0 = time.perf_counter()
        with pytest.raises(Timeout, match="1000ms"):
            OpenAICompatibleProvider().transcribe(provider, make_sample(audioFile="clip.wav"), ctx)
        assert time.perf_counter() - t0 < 2.0

    def test_fast_enough_body_succeeds(self, tmp_path, audio_file, trickle_server) -> None:
        provider = make_provider(type="openai", endpoint=trickle_server)
        ctx = TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=20_000,
                                   secrets={"OPENAI_API_KEY": "k"})
        out = OpenAICompatibleProvider().transcribe(provider, make_sample(audioFile="clip.wav"), ctx)
        assert out == "hi there"

    def test_cancel_stops_waiting(self, tmp_path, audio_file, trickle_server) -> None:
        cancel = threading.Event()
        provider = make_provider(type="openai", endpoint=trickle_server)
        ctx = TranscriptionContext(dataset_base_path=str(tmp_path), timeout_ms=20_000,
                                   secrets={"OPENAI_API_KEY": "k"}, cancel_event=cancel)
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        t0 = time.perf_counter()
        try:
            with pytest.raises(CallCancelled):
                OpenAICompatibleProvider().transcribe(provider, make_sample(audioFile="clip.wav"), ctx)
        finally:
            timer.cancel()
        assert time.perf_counter() - t0 < 2.0
