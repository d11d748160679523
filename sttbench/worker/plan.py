# worker/plan.py
from typing import List, Optional, Sequence

from sttbench.core.models import Provider, Sample
from sttbench.core.registry import TranscriptionAdapter


class Task:
    def __init__(self, index: int, provider: Provider, adapter: TranscriptionAdapter, sample: Sample):
        self.index = index  # position in plan order, used to restore ordering after parallel runs
        self.provider = provider
        self.adapter = adapter
        self.sample = sample


def cap_samples(samples: Sequence[Sample], max_samples: Optional[int]) -> List[Sample]:
    if max_samples and max_samples > 0:
        return list(samples[:max_samples])
    return list(samples)


def build_tasks(providers: Sequence[Provider], adapters: dict, samples: Sequence[Sample]) -> List[Task]:
    """Provider-major: every sample for the first provider, then the next."""
    tasks = []
    for provider in providers:
        for sample in samples:
            tasks.append(Task(len(tasks), provider, adapters[provider.id], sample))
    return tasks
