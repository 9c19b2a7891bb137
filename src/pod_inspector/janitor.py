from typing import List

from kubernetes.client.rest import ApiException

from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_JANITOR_INTERVAL = 300


class HistoryJanitor:
    """
    Removes usage history for pods that no longer exist.

    The key set is snapshotted under the history lock and the existence checks
    run without it, so a slow API server never blocks the evaluator. By
    default any error from the existence check counts as "pod is gone";
    ``strict_not_found`` restricts pruning to HTTP 404 responses.
    """

    def __init__(self, k8s_client, history, namespace,
                 interval_seconds=DEFAULT_JANITOR_INTERVAL, strict_not_found=False,
                 notification_manager=None):
        self.k8s_client = k8s_client
        self.history = history
        self.namespace = namespace
        self.interval_seconds = interval_seconds
        self.strict_not_found = strict_not_found
        self.notification_manager = notification_manager

    def run(self, cancel_event):
        logger.info("Starting history janitor", interval_seconds=self.interval_seconds)
        while not cancel_event.wait(self.interval_seconds):
            try:
                self.prune()
            except Exception as e:
                logger.error("Error during history pruning", error=str(e), exc_info=True)
        logger.debug("Cancellation received, history janitor stopped")

    def prune(self) -> List[str]:
        """One pruning pass; returns the pod names that were removed"""
        missing = [name for name in self.history.keys() if not self._exists(name)]
        removed = self.history.remove(missing)
        if removed:
            logger.info("Pruned usage history", pods=removed)
        if self.notification_manager:
            self.notification_manager.record_pruned(len(removed), len(self.history))
        return removed

    def _exists(self, pod_name) -> bool:
        try:
            return self.k8s_client.pod_exists(self.namespace, pod_name)
        except ApiException as e:
            if self.strict_not_found and e.status != 404:
                logger.warning("Pod existence check failed, keeping history",
                               pod=pod_name, status=e.status)
                return True
            logger.debug("Pod no longer exists", pod=pod_name, status=e.status)
            return False
        except Exception as e:
            if self.strict_not_found:
                logger.warning("Pod existence check failed, keeping history",
                               pod=pod_name, error=str(e))
                return True
            logger.debug("Pod existence check failed, treating as gone", pod=pod_name, error=str(e))
            return False
