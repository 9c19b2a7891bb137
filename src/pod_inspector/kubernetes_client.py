import math
import os
from typing import List, NamedTuple, Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException
from kubernetes.utils import parse_quantity

from .errors import SelectorError, StartupError
from .logger import get_logger

logger = get_logger(__name__)

METRICS_API_GROUP = "metrics.k8s.io"
METRICS_API_VERSION = "v1beta1"
METRICS_API_PLURAL = "pods"

KUBECONFIG_FALLBACK_PATHS = (
    "~/.kube/config",
    "/etc/kubernetes/admin.conf",
    "/etc/rancher/k3s/k3s.yaml",
)


class ContainerUsage(NamedTuple):
    name: str
    cpu_millicores: int
    memory_bytes: int


def cpu_millicores(quantity) -> int:
    """CPU quantity in millicores, rounded up ("250m" -> 250, "1500n" -> 1)"""
    if not quantity:
        return 0
    return int(math.ceil(parse_quantity(quantity) * 1000))


def memory_bytes(quantity) -> int:
    """Memory quantity in bytes, rounded up ("1Ki" -> 1024)"""
    if not quantity:
        return 0
    return int(math.ceil(parse_quantity(quantity)))


def render_label_selector(selector) -> str:
    """Render a V1LabelSelector as a label selector string for list calls"""
    if selector is None:
        return ""

    terms = [f"{key}={value}" for key, value in sorted((selector.match_labels or {}).items())]
    for expression in selector.match_expressions or []:
        values = ",".join(expression.values or [])
        if expression.operator == "In":
            terms.append(f"{expression.key} in ({values})")
        elif expression.operator == "NotIn":
            terms.append(f"{expression.key} notin ({values})")
        elif expression.operator == "Exists":
            terms.append(expression.key)
        elif expression.operator == "DoesNotExist":
            terms.append(f"!{expression.key}")
        else:
            raise SelectorError(f"Unsupported selector operator {expression.operator!r}")
    return ",".join(terms)


def load_kubernetes_config(kubeconfig_path: Optional[str] = None) -> None:
    """Load cluster credentials: explicit kubeconfig, in-cluster, then well-known paths"""
    if kubeconfig_path:
        if not os.path.exists(kubeconfig_path):
            raise StartupError(f"Kubeconfig file not found: {kubeconfig_path}")
        logger.info("Loading kubeconfig", path=kubeconfig_path)
        config.load_kube_config(config_file=kubeconfig_path)
        return

    try:
        # Method 1: Try in-cluster config (when running in Kubernetes)
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
        return
    except ConfigException:
        pass

    try:
        # Method 2: Try default kubeconfig location
        config.load_kube_config()
        logger.info("Loaded kubeconfig from default location")
        return
    except (ConfigException, OSError):
        pass

    # Method 3: Try common kubeconfig paths
    for kube_path in KUBECONFIG_FALLBACK_PATHS:
        kube_path = os.path.expanduser(kube_path)
        if os.path.exists(kube_path):
            logger.info("Loading kubeconfig", path=kube_path)
            config.load_kube_config(config_file=kube_path)
            return

    raise StartupError(
        "Could not load Kubernetes configuration. "
        "Please ensure you have:\n"
        "1. A running Kubernetes cluster\n"
        "2. kubectl configured properly\n"
        "3. Or set KUBECONFIG / --kubeconfig"
    )


class KubernetesClient:
    """Control plane and metrics-server access used by the inspector"""

    def __init__(self, kubeconfig_path=None, core_api=None, apps_api=None, custom_api=None):
        if core_api is None or apps_api is None or custom_api is None:
            try:
                load_kubernetes_config(kubeconfig_path)
            except StartupError:
                raise
            except Exception as e:
                raise StartupError(f"Failed to initialize Kubernetes client: {e}") from e

        self.v1 = core_api or client.CoreV1Api()
        self.apps_v1 = apps_api or client.AppsV1Api()
        self.custom = custom_api or client.CustomObjectsApi()

    def list_pod_names(self, namespace, label_selector=None) -> List[str]:
        """List pod names in a namespace, optionally filtered by label selector"""
        kwargs = {"watch": False}
        if label_selector:
            kwargs["label_selector"] = label_selector
        pods = self.v1.list_namespaced_pod(namespace, **kwargs)
        return [pod.metadata.name for pod in pods.items]

    def get_deployment_selector(self, namespace, name) -> str:
        """Label selector string matching the pods of a deployment"""
        deployment = self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)
        selector = render_label_selector(deployment.spec.selector if deployment.spec else None)
        if not selector:
            raise SelectorError(f"Deployment {namespace}/{name} has no pod selector")
        return selector

    def pod_exists(self, namespace, name) -> bool:
        """True when the pod can be read; API errors propagate to the caller"""
        self.v1.read_namespaced_pod(name=name, namespace=namespace)
        return True

    def get_pod_usage(self, namespace, name) -> List[ContainerUsage]:
        """Per-container usage reported by metrics-server"""
        metrics = self.custom.get_namespaced_custom_object(
            group=METRICS_API_GROUP,
            version=METRICS_API_VERSION,
            namespace=namespace,
            plural=METRICS_API_PLURAL,
            name=name,
        )
        usages = []
        for container in metrics.get("containers", []):
            usage = container.get("usage", {})
            usages.append(ContainerUsage(
                name=container.get("name", ""),
                cpu_millicores=cpu_millicores(usage.get("cpu")),
                memory_bytes=memory_bytes(usage.get("memory")),
            ))
        return usages

    def delete_pod(self, name, namespace) -> None:
        """Delete a pod"""
        self.v1.delete_namespaced_pod(
            name=name,
            namespace=namespace,
            body=client.V1DeleteOptions(propagation_policy="Foreground"),
        )
        logger.info("Successfully deleted pod", pod=name, namespace=namespace)

    def test_connection(self) -> bool:
        """Test Kubernetes connection"""
        try:
            self.v1.get_api_resources()
            return True
        except Exception as e:
            logger.warning("Kubernetes connection test failed", error=str(e))
            return False
