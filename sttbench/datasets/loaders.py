# datasets/loaders.py
import json
import os
from typing import List

import pydantic

from sttbench.core.errors import LoadError, ValidationError
from sttbench.core.models import Provider, Sample


def _read_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise LoadError(f"Cannot read {path}: {e}") from e


def _describe(e: pydantic.ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '<record>'}: {err['msg']}" for err in e.errors()
    )


def load_dataset(path: str) -> List[Sample]:
    """
    JSONL: one Sample per line. Blank lines and lines starting with '#'
    are skipped. Errors name the file and 1-based line number.
    """
    samples: List[Sample] = []
    seen = {}
    for lineno, raw in enumerate(_read_text(path).splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise LoadError(f"Invalid JSONL at {path}:{lineno} -> {e.msg}") from e
        if not isinstance(record, dict):
            raise ValidationError(f"Invalid sample at {path}:{lineno} -> expected a JSON object")
        try:
            sample = Sample.model_validate(record)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid sample at {path}:{lineno} -> {_describe(e)}") from e
        if sample.id in seen:
            raise ValidationError(
                f'Duplicate sample id "{sample.id}" at {path}:{lineno} (first seen on line {seen[sample.id]})'
            )
        seen[sample.id] = lineno
        samples.append(sample)
    return samples


def load_providers(path: str) -> List[Provider]:
    """JSON array of Provider records, disabled ones included."""
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise LoadError(f"Invalid JSON in {path}: {e.msg} (line {e.lineno})") from e
    if not isinstance(data, list):
        raise LoadError(f"Provider config must be a JSON array: {path}")

    providers: List[Provider] = []
    seen = set()
    for idx, record in enumerate(data):
        if not isinstance(record, dict):
            raise ValidationError(f"Provider #{idx} in {path} must be a JSON object")
        try:
            provider = Provider.model_validate(record)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid provider #{idx} in {path} -> {_describe(e)}") from e
        if provider.id in seen:
            raise ValidationError(f'Duplicate provider id "{provider.id}" in {path}')
        seen.add(provider.id)
        providers.append(provider)
    return providers


def dataset_base_path(dataset_path: str) -> str:
    return os.path.dirname(os.path.abspath(dataset_path))
