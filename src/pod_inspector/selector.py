from typing import List

from .logger import get_logger

logger = get_logger(__name__)


class PodSelector:
    """Resolves the pods to inspect on each cycle"""

    def __init__(self, k8s_client, namespace, deployment=""):
        self.k8s_client = k8s_client
        self.namespace = namespace
        self.deployment = deployment

    def select(self) -> List[str]:
        """Pod names in API order; an empty list when the lookup fails"""
        label_selector = None
        if self.deployment:
            try:
                label_selector = self.k8s_client.get_deployment_selector(self.namespace, self.deployment)
            except Exception as e:
                logger.error("Failed to get deployment selector, skipping cycle",
                             deployment=self.deployment, namespace=self.namespace, error=str(e))
                return []

        try:
            pods = self.k8s_client.list_pod_names(self.namespace, label_selector)
        except Exception as e:
            logger.error("Failed to get pods", namespace=self.namespace,
                         label_selector=label_selector, error=str(e))
            return []

        logger.debug("Selected pods", count=len(pods), label_selector=label_selector)
        return pods
