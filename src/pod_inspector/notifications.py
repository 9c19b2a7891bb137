"""
Notification system for stale pod remediation - Prometheus only
"""

from datetime import datetime, timedelta, timezone

import requests
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from .logger import get_logger

logger = get_logger(__name__)


class NotificationManager:
    def __init__(self, namespace="default", pushgateway_url=None,
                 job_name="pod_inspector", registry=None):
        self.namespace = namespace
        self.pushgateway_url = pushgateway_url.rstrip("/") if pushgateway_url else None
        self.job_name = job_name
        self.registry = registry or CollectorRegistry()
        self.sent_notifications = {}
        self.notification_cooldown = timedelta(minutes=30)

        self.cycles = Counter(
            "pod_inspector_cycles_total",
            "Total number of inspection cycles",
            ["namespace"], registry=self.registry,
        )
        self.stale_pods = Counter(
            "pod_inspector_stale_pods_total",
            "Total number of stale pod detections",
            ["namespace", "dry_run"], registry=self.registry,
        )
        self.deleted_pods = Counter(
            "pod_inspector_deleted_pods_total",
            "Total number of stale pods deleted",
            ["namespace"], registry=self.registry,
        )
        self.delete_failures = Counter(
            "pod_inspector_delete_failures_total",
            "Total number of failed stale pod deletions",
            ["namespace"], registry=self.registry,
        )
        self.probe_failures = Counter(
            "pod_inspector_probe_failures_total",
            "Total number of pods whose metrics could not be fetched",
            ["namespace"], registry=self.registry,
        )
        self.pruned_entries = Counter(
            "pod_inspector_history_pruned_total",
            "Total number of usage history entries pruned",
            ["namespace"], registry=self.registry,
        )
        self.history_size = Gauge(
            "pod_inspector_history_size",
            "Number of pods with a recorded usage sample",
            ["namespace"], registry=self.registry,
        )
        self.cycle_duration = Histogram(
            "pod_inspector_cycle_duration_seconds",
            "Time spent in one inspection cycle",
            ["namespace"], registry=self.registry,
        )

    def serve(self, port):
        """Expose the registry over HTTP"""
        start_http_server(port, registry=self.registry)
        logger.info("Serving Prometheus metrics", port=port)

    def record_cycle(self, report, history_size):
        self.cycles.labels(namespace=self.namespace).inc()
        self.cycle_duration.labels(namespace=self.namespace).observe(report.duration_seconds)
        self.history_size.labels(namespace=self.namespace).set(history_size)
        if self.pushgateway_url:
            self.push()

    def record_stale(self, dry_run):
        self.stale_pods.labels(namespace=self.namespace, dry_run=str(dry_run).lower()).inc()

    def record_deleted(self):
        self.deleted_pods.labels(namespace=self.namespace).inc()

    def record_probe_failure(self):
        self.probe_failures.labels(namespace=self.namespace).inc()

    def record_pruned(self, count, history_size):
        self.pruned_entries.labels(namespace=self.namespace).inc(count)
        self.history_size.labels(namespace=self.namespace).set(history_size)

    def notify_delete_failure(self, pod_name, error_details):
        """Count a failed deletion and log it, at most once per cooldown per pod"""
        self.delete_failures.labels(namespace=self.namespace).inc()

        pod_key = f"{self.namespace}/{pod_name}"
        last_notification = self.sent_notifications.get(pod_key)
        if last_notification and datetime.now() - last_notification < self.notification_cooldown:
            logger.debug("Notification is in cooldown", pod=pod_key)
            return False

        self.sent_notifications[pod_key] = datetime.now()
        logger.error(
            "STALE POD DELETE FAILED",
            pod=pod_name,
            namespace=self.namespace,
            error=str(error_details),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        return True

    def push(self):
        """Push the registry to the Prometheus Pushgateway"""
        url = f"{self.pushgateway_url}/metrics/job/{self.job_name}/namespace/{self.namespace}"
        try:
            response = requests.put(
                url,
                data=generate_latest(self.registry),
                headers={"Content-Type": CONTENT_TYPE_LATEST},
                timeout=10,
            )
            response.raise_for_status()
            logger.debug("Pushed metrics to Pushgateway", url=url)
            return True
        except requests.RequestException as e:
            logger.error("Failed to push to Pushgateway", url=url, error=str(e))
            return False
