import threading

import pytest
from kubernetes.client.rest import ApiException

from pod_inspector.history import UsageHistory
from pod_inspector.kubernetes_client import ContainerUsage
from pod_inspector.probe import RetryPolicy


class FakeKubernetesClient:
    """In-memory stand-in for KubernetesClient"""

    def __init__(self):
        self.pods = {}            # name -> labels
        self.deployments = {}     # name -> label selector string
        self.usage = {}           # name -> list of ContainerUsage, or an exception
        self.usage_calls = []
        self.deleted = []
        self.delete_errors = {}
        self.exists_errors = {}
        self.list_error = None
        self.lock = threading.Lock()

    def add_pod(self, name, labels=None, cpu=0, memory=0):
        self.pods[name] = labels or {}
        self.set_usage(name, cpu=cpu, memory=memory)

    def set_usage(self, name, cpu=0, memory=0):
        self.usage[name] = [ContainerUsage("main", cpu, memory)]

    def list_pod_names(self, namespace, label_selector=None):
        if self.list_error:
            raise self.list_error
        if not label_selector:
            return list(self.pods)
        wanted = dict(term.split("=", 1) for term in label_selector.split(","))
        return [
            name for name, labels in self.pods.items()
            if all(labels.get(key) == value for key, value in wanted.items())
        ]

    def get_deployment_selector(self, namespace, name):
        if name not in self.deployments:
            raise ApiException(status=404, reason="Not Found")
        return self.deployments[name]

    def pod_exists(self, namespace, name):
        if name in self.exists_errors:
            raise self.exists_errors[name]
        if name not in self.pods:
            raise ApiException(status=404, reason="Not Found")
        return True

    def get_pod_usage(self, namespace, name):
        with self.lock:
            self.usage_calls.append(name)
        usage = self.usage.get(name)
        if usage is None:
            raise ApiException(status=404, reason="Not Found")
        if isinstance(usage, Exception):
            raise usage
        return usage

    def delete_pod(self, name, namespace):
        if name in self.delete_errors:
            raise self.delete_errors[name]
        self.deleted.append(name)
        self.pods.pop(name, None)


@pytest.fixture
def k8s():
    return FakeKubernetesClient()


@pytest.fixture
def history():
    return UsageHistory()


@pytest.fixture
def no_wait_policy():
    return RetryPolicy(max_attempts=3, delay_seconds=0, sleep=lambda seconds: None)
