import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Lock
from typing import List

from .evaluator import Verdict
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class CycleReport:
    evaluated: List[str] = field(default_factory=list)
    stale: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    delete_failed: List[str] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    skipped: bool = False


class PodInspector:
    """Periodically evaluates the selected pods and deletes the stale ones"""

    def __init__(self, k8s_client, selector, evaluator, history, namespace,
                 period_seconds=60, dry_run=False, max_workers=1,
                 notification_manager=None):
        self.k8s_client = k8s_client
        self.selector = selector
        self.evaluator = evaluator
        self.history = history
        self.namespace = namespace
        self.period_seconds = period_seconds
        self.dry_run = dry_run
        self.max_workers = max_workers
        self.notification_manager = notification_manager
        self.lock = Lock()
        self.is_running = False
        self.cycle_count = 0

    def run(self, cancel_event):
        """Tick every period until ``cancel_event`` is set"""
        logger.info("Starting stale pod monitoring", period_seconds=self.period_seconds,
                    namespace=self.namespace, dry_run=self.dry_run)
        while not cancel_event.wait(self.period_seconds):
            self.cycle_count += 1
            logger.debug("Starting inspection cycle", cycle=self.cycle_count)
            self.run_cycle()
        logger.debug("Cancellation received, stale pod monitoring stopped")

    def run_cycle(self) -> CycleReport:
        """Run one inspection cycle"""
        with self.lock:
            if self.is_running:
                logger.info("Previous run still in progress, skipping...")
                return CycleReport(skipped=True)
            self.is_running = True

        report = CycleReport()
        start_time = time.time()
        try:
            pods = self.selector.select()
            for pod_name, verdict in zip(pods, self._evaluate(pods)):
                report.evaluated.append(pod_name)
                if verdict is Verdict.STALE:
                    report.stale.append(pod_name)
                    self.remediate(pod_name, report)
                elif verdict is Verdict.UNKNOWN:
                    report.unknown.append(pod_name)
        except Exception as e:
            logger.error("Error during inspection cycle", error=str(e), exc_info=True)
        finally:
            report.duration_seconds = time.time() - start_time
            with self.lock:
                self.is_running = False

        self.log_results(report)
        if self.notification_manager:
            self.notification_manager.record_cycle(report, len(self.history))
        return report

    def _evaluate(self, pods):
        if self.max_workers <= 1 or len(pods) <= 1:
            return (self.evaluator.evaluate(pod_name) for pod_name in pods)
        with ThreadPoolExecutor(max_workers=self.max_workers,
                                thread_name_prefix="pod-inspector-eval") as pool:
            return list(pool.map(self.evaluator.evaluate, pods))

    def remediate(self, pod_name, report):
        logger.warning("Stale pod detected", pod=pod_name, namespace=self.namespace,
                       dry_run=self.dry_run)
        if self.notification_manager:
            self.notification_manager.record_stale(self.dry_run)
        if self.dry_run:
            return

        try:
            self.k8s_client.delete_pod(name=pod_name, namespace=self.namespace)
        except Exception as e:
            logger.error("Failed to delete pod", pod=pod_name, namespace=self.namespace, error=str(e))
            report.delete_failed.append(pod_name)
            if self.notification_manager:
                self.notification_manager.notify_delete_failure(pod_name, e)
            return

        logger.info("Deleted stale pod", pod=pod_name, namespace=self.namespace)
        report.deleted.append(pod_name)
        if self.notification_manager:
            self.notification_manager.record_deleted()

    def log_results(self, report):
        """Log the outcome of a cycle"""
        logger.info("=== INSPECTION SUMMARY ===")
        logger.info(
            "Cycle finished",
            evaluated=len(report.evaluated),
            stale=len(report.stale),
            unknown=len(report.unknown),
            execution_time=f"{report.duration_seconds:.2f}s",
        )

        if self.dry_run:
            logger.info("DRY RUN - No pods were deleted", would_delete=report.stale)
        elif report.deleted or report.delete_failed:
            logger.info("Deleted pods", pods=report.deleted, failed=report.delete_failed)
        else:
            logger.info("No pods were deleted in this cycle")

        logger.info("=== END SUMMARY ===")
