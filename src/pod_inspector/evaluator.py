from enum import Enum

from .errors import ProbeError
from .logger import get_logger

logger = get_logger(__name__)


class Verdict(Enum):
    STALE = "stale"
    NOT_STALE = "not_stale"
    UNKNOWN = "unknown"


class StalenessEvaluator:
    """
    Turns a fresh usage sample into a verdict against the previous one.

    A pod is stale when ``current - previous < threshold``. The delta is
    signed, so flat or falling usage counts as stale and rising usage never
    does. The first sample of a pod only records a baseline.
    """

    def __init__(self, probe, history, threshold, notification_manager=None):
        self.probe = probe
        self.history = history
        self.threshold = threshold
        self.notification_manager = notification_manager

    def evaluate(self, pod_name) -> Verdict:
        try:
            current = self.probe.probe(pod_name)
        except ProbeError as e:
            logger.warning("Failed to get metrics for pod after retries",
                           pod=pod_name, attempts=e.attempts, error=str(e.last_error))
            if self.notification_manager:
                self.notification_manager.record_probe_failure()
            return Verdict.UNKNOWN

        previous = self.history.exchange(pod_name, current)
        if previous is None:
            logger.debug("Recorded usage baseline", pod=pod_name, usage=current)
            return Verdict.NOT_STALE

        delta = current - previous
        logger.debug("Usage delta", pod=pod_name, current=current,
                     previous=previous, delta=delta, threshold=self.threshold)
        if delta < self.threshold:
            return Verdict.STALE
        return Verdict.NOT_STALE
