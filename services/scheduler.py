import logging
import threading
from typing import Optional

from services.notification_pipeline import NotificationPipeline

logger = logging.getLogger(__name__)


class PollScheduler:
    """Background thread that runs the notification pipeline on a fixed interval"""

    def __init__(self, pipeline: NotificationPipeline, interval_seconds: float = 300):
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        logger.info(f"Poll scheduler started (every {self.interval_seconds}s)")
        while not self._stop_event.wait(timeout=self.interval_seconds):
            self.pipeline.check_and_notify()
            self.runs += 1
        logger.info("Poll scheduler stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="PollScheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None
