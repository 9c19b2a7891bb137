"""
Exception types raised by Pod Inspector
"""


class InspectorError(Exception):
    """Base class for all Pod Inspector errors"""


class ConfigError(InspectorError, ValueError):
    """Invalid configuration value"""


class StartupError(InspectorError):
    """The Kubernetes clients could not be constructed"""


class SelectorError(InspectorError):
    """A deployment exposes no usable pod label selector"""


class ProbeError(InspectorError):
    """Pod usage could not be fetched within the retry budget"""

    def __init__(self, pod_name, attempts, last_error=None):
        self.pod_name = pod_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to get metrics for pod {pod_name} after {attempts} attempts: {last_error}"
        )
