#!/usr/bin/env python3
"""
Kubernetes Pod Inspector - Main Application
"""

import signal
import sys

from . import __version__
from .config import load_config
from .errors import ConfigError, StartupError
from .evaluator import StalenessEvaluator
from .history import UsageHistory
from .inspector import PodInspector
from .janitor import HistoryJanitor
from .kubernetes_client import KubernetesClient
from .lifecycle import LifecycleController
from .logger import get_logger, log_startup, setup_logging
from .notifications import NotificationManager
from .probe import MetricsProbe, RetryPolicy
from .selector import PodSelector

WAIT_SLICE_SECONDS = 1.0


def build_inspector(cfg, k8s_client, history, notification_manager=None):
    """Wire the probe, evaluator and selector into an inspector"""
    probe = MetricsProbe(
        k8s_client,
        cfg.namespace,
        check_ram=cfg.check_ram,
        retry_policy=RetryPolicy(max_attempts=cfg.probe_attempts, delay_seconds=cfg.probe_delay_seconds),
    )
    evaluator = StalenessEvaluator(probe, history, cfg.threshold, notification_manager)
    selector = PodSelector(k8s_client, cfg.namespace, cfg.deployment)
    return PodInspector(
        k8s_client,
        selector,
        evaluator,
        history,
        cfg.namespace,
        period_seconds=cfg.period_seconds,
        dry_run=cfg.dry_run,
        max_workers=cfg.max_workers,
        notification_manager=notification_manager,
    )


def run(cfg, k8s_client, controller=None, notification_manager=None):
    """Start the periodic tasks and block until cancellation"""
    logger = get_logger("main")
    controller = controller or LifecycleController(cfg.timeout_seconds)
    history = UsageHistory()

    inspector = build_inspector(cfg, k8s_client, history, notification_manager)
    controller.start()
    controller.spawn("stale-pod-monitor", inspector.run)
    if cfg.janitor_interval_seconds > 0:
        janitor = HistoryJanitor(
            k8s_client,
            history,
            cfg.namespace,
            interval_seconds=cfg.janitor_interval_seconds,
            strict_not_found=cfg.janitor_strict_not_found,
            notification_manager=notification_manager,
        )
        controller.spawn("history-janitor", janitor.run)

    try:
        # Short waits keep the main thread responsive to signals
        while not controller.wait(WAIT_SLICE_SECONDS):
            pass
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        controller.cancel("interrupt")

    controller.shutdown(join_timeout=cfg.period_seconds)
    logger.info("Program terminated.", reason=controller.reason)
    return controller


def install_signal_handlers(controller):
    def handle(signum, frame):
        controller.cancel(signal.Signals(signum).name)

    signal.signal(signal.SIGTERM, handle)
    signal.signal(signal.SIGINT, handle)


def main(argv=None):
    """Main application entry point"""
    try:
        cfg = load_config(argv)
    except ConfigError as e:
        setup_logging()
        get_logger("main").error("Invalid configuration", error=str(e))
        return 1

    setup_logging(debug=cfg.debug, log_format=cfg.log_format)
    logger = get_logger("main")
    log_startup(cfg.as_dict(), __version__)

    try:
        k8s_client = KubernetesClient(cfg.kubeconfig_path)
    except StartupError as e:
        logger.error("Application failed to start", error=str(e))
        return 1
    if not k8s_client.test_connection():
        logger.error("Application failed to start", error="Kubernetes API is not reachable")
        return 1

    notification_manager = NotificationManager(
        namespace=cfg.namespace,
        pushgateway_url=cfg.pushgateway_url,
        job_name=cfg.job_name,
    )
    if cfg.metrics_port > 0:
        notification_manager.serve(cfg.metrics_port)

    controller = LifecycleController(cfg.timeout_seconds)
    install_signal_handlers(controller)
    run(cfg, k8s_client, controller, notification_manager)
    return 0


if __name__ == "__main__":
    sys.exit(main())
