"""
Remediation loop tests
"""

import threading
from unittest.mock import Mock

from kubernetes.client.rest import ApiException
from prometheus_client import CollectorRegistry

from pod_inspector.evaluator import StalenessEvaluator
from pod_inspector.inspector import PodInspector
from pod_inspector.notifications import NotificationManager
from pod_inspector.probe import MetricsProbe
from pod_inspector.selector import PodSelector


def make_inspector(k8s, history, policy, dry_run=False, max_workers=1, deployment="",
                   notification_manager=None, period_seconds=60):
    probe = MetricsProbe(k8s, "default", retry_policy=policy)
    evaluator = StalenessEvaluator(probe, history, 100, notification_manager)
    selector = PodSelector(k8s, "default", deployment)
    return PodInspector(k8s, selector, evaluator, history, "default",
                        period_seconds=period_seconds, dry_run=dry_run,
                        max_workers=max_workers, notification_manager=notification_manager)


def test_first_cycle_never_deletes(k8s, history, no_wait_policy):
    k8s.add_pod("a", cpu=10)
    k8s.add_pod("b", cpu=10)
    inspector = make_inspector(k8s, history, no_wait_policy)

    report = inspector.run_cycle()

    assert report.evaluated == ["a", "b"]
    assert report.stale == []
    assert k8s.deleted == []


def test_stale_pods_are_deleted(k8s, history, no_wait_policy):
    k8s.add_pod("idle", cpu=10)
    k8s.add_pod("busy", cpu=10)
    inspector = make_inspector(k8s, history, no_wait_policy)
    inspector.run_cycle()

    k8s.set_usage("busy", cpu=500)
    report = inspector.run_cycle()

    assert report.stale == ["idle"]
    assert report.deleted == ["idle"]
    assert k8s.deleted == ["idle"]


def test_reports_only_hold_their_own_cycle(k8s, history, no_wait_policy):
    inspector = make_inspector(k8s, history, no_wait_policy)

    for i in range(5):
        k8s.add_pod(f"idle-{i}", cpu=10)
        inspector.run_cycle()
        report = inspector.run_cycle()
        assert report.deleted == [f"idle-{i}"]

    assert k8s.deleted == [f"idle-{i}" for i in range(5)]


def test_dry_run_never_deletes(k8s, history, no_wait_policy):
    for name in ("a", "b", "c"):
        k8s.add_pod(name, cpu=10)
    k8s.delete_pod = Mock()
    inspector = make_inspector(k8s, history, no_wait_policy, dry_run=True)

    inspector.run_cycle()
    report = inspector.run_cycle()

    assert report.stale == ["a", "b", "c"]
    assert report.deleted == []
    k8s.delete_pod.assert_not_called()


def test_delete_failure_does_not_stop_other_pods(k8s, history, no_wait_policy):
    for name in ("a", "b", "c"):
        k8s.add_pod(name, cpu=10)
    k8s.delete_errors["b"] = ApiException(status=403, reason="Forbidden")
    notifications = NotificationManager(registry=CollectorRegistry())
    inspector = make_inspector(k8s, history, no_wait_policy, notification_manager=notifications)

    inspector.run_cycle()
    report = inspector.run_cycle()

    assert report.deleted == ["a", "c"]
    assert report.delete_failed == ["b"]
    assert notifications.registry.get_sample_value(
        "pod_inspector_delete_failures_total", {"namespace": "default"}) == 1.0

    # not retried within the cycle, retried only if still stale next cycle
    report = inspector.run_cycle()
    assert report.delete_failed == ["b"]


def test_unknown_pods_are_skipped(k8s, history, no_wait_policy):
    k8s.add_pod("a", cpu=10)
    k8s.pods["broken"] = {}
    k8s.usage["broken"] = ApiException(status=503)
    inspector = make_inspector(k8s, history, no_wait_policy)

    inspector.run_cycle()
    report = inspector.run_cycle()

    assert report.unknown == ["broken"]
    assert k8s.deleted == ["a"]


def test_selector_failure_aborts_only_current_cycle(k8s, history, no_wait_policy):
    k8s.add_pod("a", cpu=10)
    inspector = make_inspector(k8s, history, no_wait_policy)
    inspector.run_cycle()

    k8s.list_error = ApiException(status=500)
    assert inspector.run_cycle().evaluated == []

    k8s.list_error = None
    assert inspector.run_cycle().deleted == ["a"]


def test_deployment_filter_only_touches_matching_pods(k8s, history, no_wait_policy):
    k8s.deployments["worker"] = "app=worker"
    k8s.add_pod("worker-1", {"app": "worker"}, cpu=10)
    k8s.add_pod("web-1", {"app": "web"}, cpu=10)
    inspector = make_inspector(k8s, history, no_wait_policy, deployment="worker")

    inspector.run_cycle()
    inspector.run_cycle()

    assert k8s.deleted == ["worker-1"]
    assert "web-1" not in history


def test_worker_pool_keeps_pod_order(k8s, history, no_wait_policy):
    names = [f"pod-{i}" for i in range(8)]
    for name in names:
        k8s.add_pod(name, cpu=10)
    inspector = make_inspector(k8s, history, no_wait_policy, max_workers=4)

    inspector.run_cycle()
    report = inspector.run_cycle()

    assert report.evaluated == names
    assert k8s.deleted == names
    assert len(history) == 8


def test_overlapping_cycle_is_skipped(k8s, history, no_wait_policy):
    inspector = make_inspector(k8s, history, no_wait_policy)
    inspector.is_running = True

    assert inspector.run_cycle().skipped


def test_run_exits_when_cancelled(k8s, history, no_wait_policy):
    k8s.add_pod("a", cpu=10)
    inspector = make_inspector(k8s, history, no_wait_policy, period_seconds=0.01)
    cancel = threading.Event()

    thread = threading.Thread(target=inspector.run, args=(cancel,))
    thread.start()
    cancel.wait(0.2)
    cancel.set()
    thread.join(2)

    assert not thread.is_alive()
    assert inspector.cycle_count >= 1
    assert not history.lock.locked()


def test_cycle_metrics_are_recorded(k8s, history, no_wait_policy):
    k8s.add_pod("a", cpu=10)
    notifications = NotificationManager(registry=CollectorRegistry())
    inspector = make_inspector(k8s, history, no_wait_policy, dry_run=True,
                               notification_manager=notifications)

    inspector.run_cycle()
    inspector.run_cycle()

    registry = notifications.registry
    assert registry.get_sample_value("pod_inspector_cycles_total", {"namespace": "default"}) == 2.0
    assert registry.get_sample_value(
        "pod_inspector_stale_pods_total", {"namespace": "default", "dry_run": "true"}) == 1.0
    assert registry.get_sample_value("pod_inspector_history_size", {"namespace": "default"}) == 1.0
