import threading
from typing import Dict, Iterable, List, Optional


class UsageHistory:
    """
    Last observed usage sample per pod.

    Every read-modify-write runs under ``lock``, which is shared by the
    evaluator and the janitor. Pass a lock in to share it with other code.

    ``exchange``, ``keys`` and ``remove`` are the operations the inspector
    uses; ``get``, ``snapshot``, ``in`` and ``len`` are read-only views for
    introspection and tests.
    """

    def __init__(self, lock=None):
        self.lock = lock if lock is not None else threading.Lock()
        self._samples: Dict[str, int] = {}

    def exchange(self, pod_name: str, sample: int) -> Optional[int]:
        """Store ``sample`` and return the one it replaced, None on first sight"""
        with self.lock:
            previous = self._samples.get(pod_name)
            self._samples[pod_name] = sample
            return previous

    def get(self, pod_name: str) -> Optional[int]:
        with self.lock:
            return self._samples.get(pod_name)

    def keys(self) -> List[str]:
        """Snapshot of the tracked pod names"""
        with self.lock:
            return list(self._samples)

    def remove(self, pod_names: Iterable[str]) -> List[str]:
        """Drop entries, returning the names that were actually present"""
        removed = []
        with self.lock:
            for name in pod_names:
                if name in self._samples:
                    del self._samples[name]
                    removed.append(name)
        return removed

    def snapshot(self) -> Dict[str, int]:
        with self.lock:
            return dict(self._samples)

    def __contains__(self, pod_name) -> bool:
        with self.lock:
            return pod_name in self._samples

    def __len__(self) -> int:
        with self.lock:
            return len(self._samples)
