# core/metrics.py
from typing import Iterable, Optional, Sequence

import numpy as np

from .normalize import tokenize_chars, tokenize_words


# -----------------------
# Edit distance
# -----------------------
def levenshtein_distance(source: Sequence, target: Sequence) -> int:
    """
    Unit-cost insert/delete/substitute distance between two sequences.
    Keeps two rows of the DP table, so memory is O(len(target)).
    """
    if len(source) == 0:
        return len(target)
    if len(target) == 0:
        return len(source)

    prev = list(range(len(target) + 1))
    curr = [0] * (len(target) + 1)
    for i in range(1, len(source) + 1):
        curr[0] = i
        s_item = source[i - 1]
        for j in range(1, len(target) + 1):
            sub = prev[j - 1] + (0 if s_item == target[j - 1] else 1)
            dele = prev[j] + 1
            ins = curr[j - 1] + 1
            curr[j] = min(sub, dele, ins)
        prev, curr = curr, prev
    return prev[len(target)]


def _error_rate(ref_tokens: Sequence, hyp_tokens: Sequence) -> float:
    if not ref_tokens:
        # nothing to get wrong, unless the provider invented output
        return 0.0 if not hyp_tokens else 1.0
    return levenshtein_distance(ref_tokens, hyp_tokens) / len(ref_tokens)


def word_error_rate(reference: str, hypothesis: str) -> float:
    return _error_rate(tokenize_words(reference), tokenize_words(hypothesis))


def character_error_rate(reference: str, hypothesis: str) -> float:
    return _error_rate(tokenize_chars(reference), tokenize_chars(hypothesis))


# -----------------------
# Aggregates (None == "no data", never 0)
# -----------------------
def _finite(values: Iterable) -> np.ndarray:
    arr = np.asarray([v for v in values if v is not None], dtype=float)
    return arr[np.isfinite(arr)]


def mean(values: Iterable) -> Optional[float]:
    xs = _finite(values)
    if xs.size == 0:
        return None
    return float(np.mean(xs))


def percentile(values: Iterable, p: float) -> Optional[float]:
    xs = _finite(values)
    if xs.size == 0:
        return None
    # numpy's default "linear" method interpolates at p/100 * (n - 1)
    return float(np.percentile(xs, p))
