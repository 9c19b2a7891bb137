import time
from dataclasses import dataclass
from typing import Callable, Tuple, Type

from .errors import ProbeError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay bounded retry"""

    max_attempts: int = 3
    delay_seconds: float = 2.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = time.sleep

    def call(self, func, *args, **kwargs):
        """
        Call ``func`` until it returns, sleeping ``delay_seconds`` between
        failed attempts. The last error is re-raised once attempts run out.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                if attempt == self.max_attempts:
                    raise
                logger.debug("Attempt failed, retrying", attempt=attempt,
                             max_attempts=self.max_attempts, error=str(e))
                self.sleep(self.delay_seconds)


class MetricsProbe:
    def __init__(self, k8s_client, namespace, check_ram=False, retry_policy=None):
        self.k8s_client = k8s_client
        self.namespace = namespace
        self.check_ram = check_ram
        self.retry_policy = retry_policy or RetryPolicy()

    def probe(self, pod_name) -> int:
        """Aggregate usage over all containers; raises ProbeError when retries run out"""
        try:
            containers = self.retry_policy.call(self.k8s_client.get_pod_usage, self.namespace, pod_name)
        except Exception as e:
            raise ProbeError(pod_name, self.retry_policy.max_attempts, e) from e

        if self.check_ram:
            return sum(container.memory_bytes for container in containers)
        return sum(container.cpu_millicores for container in containers)
