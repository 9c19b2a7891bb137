"""
Configuration management for Pod Inspector
"""

import argparse
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

LOG_FORMATS = ("console", "json")


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    return environ.get(name, str(default)).strip().lower() == "true"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration class for Pod Inspector"""

    # Kubernetes configuration
    kubeconfig_path: Optional[str] = None
    namespace: str = "default"
    deployment: str = ""

    # Staleness detection
    check_ram: bool = False
    threshold: int = 100
    period_seconds: int = 60
    dry_run: bool = False
    probe_attempts: int = 3
    probe_delay_seconds: float = 2.0
    max_workers: int = 1

    # History pruning
    janitor_interval_seconds: int = 300
    janitor_strict_not_found: bool = False

    # Execution control
    timeout_seconds: int = 0

    # Logging configuration
    debug: bool = False
    log_format: str = "console"

    # Prometheus
    metrics_port: int = 0
    pushgateway_url: Optional[str] = None
    job_name: str = "pod_inspector"

    def __post_init__(self):
        if self.period_seconds < 1:
            raise ConfigError("period must be at least 1 second")
        if self.timeout_seconds < 0:
            raise ConfigError("timeout must not be negative")
        if self.janitor_interval_seconds < 0:
            raise ConfigError("janitor interval must not be negative")
        if self.probe_attempts < 1:
            raise ConfigError("probe attempts must be at least 1")
        if self.probe_delay_seconds < 0:
            raise ConfigError("probe delay must not be negative")
        if self.max_workers < 1:
            raise ConfigError("max workers must be at least 1")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log format must be one of {', '.join(LOG_FORMATS)}")

    @property
    def metric_name(self) -> str:
        return "memory" if self.check_ram else "cpu"

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _env_values(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Raw field values from environment variables, falling back to defaults"""
    if environ is None:
        load_dotenv()
        environ = os.environ

    defaults = MonitorConfig()
    return dict(
        kubeconfig_path=environ.get("KUBECONFIG") or defaults.kubeconfig_path,
        namespace=environ.get("NAMESPACE", defaults.namespace),
        deployment=environ.get("TARGET_DEPLOYMENT", defaults.deployment),
        check_ram=_env_bool(environ, "CHECK_RAM", defaults.check_ram),
        threshold=_env_int(environ, "THRESHOLD", defaults.threshold),
        period_seconds=_env_int(environ, "PERIOD_SECONDS", defaults.period_seconds),
        dry_run=_env_bool(environ, "DRY_RUN", defaults.dry_run),
        probe_attempts=_env_int(environ, "PROBE_ATTEMPTS", defaults.probe_attempts),
        probe_delay_seconds=_env_float(environ, "PROBE_DELAY_SECONDS", defaults.probe_delay_seconds),
        max_workers=_env_int(environ, "MAX_WORKERS", defaults.max_workers),
        janitor_interval_seconds=_env_int(
            environ, "JANITOR_INTERVAL_SECONDS", defaults.janitor_interval_seconds
        ),
        janitor_strict_not_found=_env_bool(
            environ, "JANITOR_STRICT_NOT_FOUND", defaults.janitor_strict_not_found
        ),
        timeout_seconds=_env_int(environ, "TIMEOUT_SECONDS", defaults.timeout_seconds),
        debug=_env_bool(environ, "DEBUG", defaults.debug),
        log_format=environ.get("LOG_FORMAT", defaults.log_format).lower(),
        metrics_port=_env_int(environ, "METRICS_PORT", defaults.metrics_port),
        pushgateway_url=environ.get("PROMETHEUS_PUSHGATEWAY_URL") or defaults.pushgateway_url,
        job_name=environ.get("PROMETHEUS_JOB_NAME", defaults.job_name),
    )


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """Build a configuration from environment variables, falling back to defaults"""
    return MonitorConfig(**_env_values(environ))


def build_parser(base: Mapping[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pod-inspector",
        description="Detect pods whose resource usage stopped changing and delete them.",
    )
    parser.add_argument("--kubeconfig", dest="kubeconfig_path", default=base["kubeconfig_path"],
                        help="Path to kubeconfig file")
    parser.add_argument("--namespace", default=base["namespace"], help="Namespace to watch")
    parser.add_argument("--deployment", default=base["deployment"], help="Target deployment to watch")
    parser.add_argument("--dry-run", action="store_true", default=base["dry_run"],
                        help="Only log stale pods without deleting them")
    parser.add_argument("--period", dest="period_seconds", type=int, default=base["period_seconds"],
                        help="Time period in seconds to check for stale pods")
    parser.add_argument("--threshold", type=int, default=base["threshold"],
                        help="Usage delta below which a pod is considered stale")
    parser.add_argument("--timeout", dest="timeout_seconds", type=int, default=base["timeout_seconds"],
                        help="Seconds to run before exiting, 0 runs indefinitely")
    parser.add_argument("--check-ram", action="store_true", default=base["check_ram"],
                        help="Check RAM instead of CPU")
    parser.add_argument("--debug", action="store_true", default=base["debug"], help="Enable debug mode")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=base["log_format"])
    parser.add_argument("--janitor-interval", dest="janitor_interval_seconds", type=int,
                        default=base["janitor_interval_seconds"],
                        help="Seconds between history pruning passes, 0 disables pruning")
    parser.add_argument("--janitor-strict", dest="janitor_strict_not_found", action="store_true",
                        default=base["janitor_strict_not_found"],
                        help="Prune history only when the API reports the pod as not found")
    parser.add_argument("--max-workers", type=int, default=base["max_workers"],
                        help="Pods evaluated concurrently within one cycle")
    parser.add_argument("--metrics-port", type=int, default=base["metrics_port"],
                        help="Serve Prometheus metrics on this port, 0 disables the endpoint")
    return parser


def load_config(argv: Optional[List[str]] = None,
                environ: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """Environment first, command line flags on top"""
    values = _env_values(environ)
    args = build_parser(values).parse_args(argv)
    values.update(vars(args))
    return MonitorConfig(**values)
