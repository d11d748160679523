# providers/command.py
import os
import re
import signal
import subprocess
import time
from typing import Dict, Optional

from sttbench.core.errors import CallCancelled, CommandFailed, EmptyOutput, Timeout
from sttbench.core.models import Provider, Sample
from sttbench.core.registry import TranscriptionAdapter, TranscriptionContext, register_provider

_PLACEHOLDER = re.compile(r"\{\{([a-zA-Z0-9_]+)\}\}")
STDERR_EXCERPT = 300
POLL_S = 0.1


def fill_template(template: str, context: Dict[str, object]) -> str:
    """Expand {{name}} placeholders; unknown names expand to ''."""
    def _sub(m):
        value = context.get(m.group(1))
        return "" if value is None else str(value)
    return _PLACEHOLDER.sub(_sub, str(template))


def _kill_tree(proc: subprocess.Popen) -> None:
    # the shell may have forked children that still hold stdout open
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
    proc.kill()


@register_provider("command")
class CommandProvider(TranscriptionAdapter):
    """Runs a local shell command and reads the transcript from stdout."""

    def _transcribe(self, provider: Provider, sample: Sample, ctx: TranscriptionContext,
                    audio_path: Optional[str]) -> str:
        if not provider.command:
            raise CommandFailed(f'Provider "{provider.id}" of type "command" must define "command"')

        cmd = fill_template(provider.command, {
            "sampleId": sample.id,
            "audioFile": audio_path,
            "audioFileName": os.path.basename(audio_path),
            "reference": sample.reference,
        })

        proc = subprocess.Popen(
            cmd,
            shell=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            start_new_session=(os.name == "posix"),
        )
        stdout, stderr = self._wait(proc, ctx)

        if proc.returncode != 0:
            raise CommandFailed(
                f"Command exited with code {proc.returncode}: {stderr.strip()[:STDERR_EXCERPT]}"
            )
        transcript = stdout.strip()
        if not transcript:
            raise EmptyOutput("Command produced empty transcript output")
        return transcript

    @staticmethod
    def _wait(proc: subprocess.Popen, ctx: TranscriptionContext):
        """Collect output, killing the process group on timeout or cancel."""
        deadline = time.monotonic() + ctx.timeout_s
        while True:
            remaining = deadline - time.monotonic()
            try:
                return proc.communicate(timeout=max(0.0, min(POLL_S, remaining)))
            except subprocess.TimeoutExpired:
                pass
            if ctx.cancelled:
                _kill_tree(proc)
                proc.communicate()
                raise CallCancelled(f"Command cancelled (pid {proc.pid})")
            if time.monotonic() >= deadline:
                _kill_tree(proc)
                proc.communicate()
                raise Timeout(f"Command timed out after {ctx.timeout_ms}ms")
