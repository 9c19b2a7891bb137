import threading
import time

from .logger import get_logger

logger = get_logger(__name__)


class LifecycleController:
    """
    Owns the cancellation event shared by every periodic task.

    Cancellation is one-way: the first call to ``cancel`` wins and later calls
    are no-ops. A positive ``timeout_seconds`` arms a one-shot timer that
    cancels on expiry; zero means run until cancelled some other way.
    """

    def __init__(self, timeout_seconds=0):
        self.timeout_seconds = timeout_seconds
        self.cancel_event = threading.Event()
        self.reason = None
        self._lock = threading.Lock()
        self._timer = None
        self._threads = []

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def start(self):
        if self.timeout_seconds and self.timeout_seconds > 0:
            logger.debug("Starting timeout countdown", timeout_seconds=self.timeout_seconds)
            self._timer = threading.Timer(self.timeout_seconds, self._on_timeout)
            self._timer.daemon = True
            self._timer.start()

    def _on_timeout(self):
        logger.info("Timeout reached. Attempting to terminate program.")
        self.cancel("timeout")

    def cancel(self, reason="manual"):
        with self._lock:
            if self.cancel_event.is_set():
                return False
            self.reason = reason
            self.cancel_event.set()
        logger.info("Cancellation requested", reason=reason)
        return True

    def spawn(self, name, target):
        """Run ``target(cancel_event)`` on a daemon thread"""
        thread = threading.Thread(target=target, args=(self.cancel_event,), name=name, daemon=True)
        thread.start()
        self._threads.append(thread)
        return thread

    def wait(self, timeout=None) -> bool:
        return self.cancel_event.wait(timeout)

    def shutdown(self, join_timeout=30.0):
        """Cancel, stop the timer and wait up to ``join_timeout`` in total for the tasks"""
        self.cancel("shutdown")
        if self._timer is not None:
            self._timer.cancel()
        deadline = time.monotonic() + join_timeout
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                logger.warning("Task did not stop in time", task=thread.name)
