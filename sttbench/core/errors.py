# core/errors.py
"""
Error taxonomy for a benchmark run.

Fatal errors (LoadError, ValidationError, EmptyInputError) abort the run
before any sample executes. AdapterFailure subclasses are per-call and end
up as the `error` message of a failed SampleResult.
"""


class BenchmarkError(Exception):
    """Base class for every error raised by sttbench."""


class LoadError(BenchmarkError):
    """Dataset or provider file could not be read or parsed."""


class ValidationError(BenchmarkError):
    """A record or run parameter is missing required fields or is out of range."""


class EmptyInputError(BenchmarkError):
    """Zero enabled providers or zero samples after limits were applied."""


class AdapterFailure(BenchmarkError):
    """A single transcription call failed; recorded, never fatal."""

    kind = "AdapterFailure"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class InvalidSample(AdapterFailure):
    kind = "InvalidSample"


class MissingHypothesis(AdapterFailure):
    kind = "MissingHypothesis"


class AudioFileNotFound(AdapterFailure):
    kind = "AudioFileNotFound"


class CommandFailed(AdapterFailure):
    kind = "CommandFailed"


class EmptyOutput(AdapterFailure):
    kind = "EmptyOutput"


class Timeout(AdapterFailure):
    kind = "Timeout"


class MissingCredential(AdapterFailure):
    kind = "MissingCredential"


class MalformedResponse(AdapterFailure):
    kind = "MalformedResponse"


class ProviderHttpError(AdapterFailure):
    kind = "ProviderHttpError"

    def __init__(self, message: str, status_code: int | None = None, body_excerpt: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class CallCancelled(BenchmarkError):
    """The run was cancelled while this call was in flight; its result is dropped."""
