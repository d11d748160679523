# core/normalize.py
import re
from typing import List

from jiwer import Compose, ToLowerCase, Strip


# Small generic regex transform compatible with jiwer.Compose
class RegexSub:
    def __init__(self, pattern: str, repl: str):
        self._re = re.compile(pattern)
        self._repl = repl

    def __call__(self, s: str) -> str:
        return self._re.sub(self._repl, s)


# Anything that is not a letter, digit or whitespace. `\w` also matches "_",
# which is punctuation for our purposes.
_NON_WORD = r"[^\w\s]|_"
_APOSTROPHES = r"['‘’]"


def build_norm_pipeline():
    return Compose([
        ToLowerCase(),
        # "don't" -> "dont" rather than "don t"
        RegexSub(_APOSTROPHES, ""),
        RegexSub(_NON_WORD, " "),
        RegexSub(r"\s+", " "),
        Strip(),
    ])


_NORM = build_norm_pipeline()


def normalize_transcript(text: str) -> str:
    return _NORM(str(text))


def tokenize_words(text: str) -> List[str]:
    normalized = normalize_transcript(text)
    # "".split(" ") would give [""]
    return normalized.split(" ") if normalized else []


def tokenize_chars(text: str) -> List[str]:
    return list(re.sub(r"\s", "", normalize_transcript(text)))
