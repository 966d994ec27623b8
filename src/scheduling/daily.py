"""
Daily Trigger

Runs a task once a day at local midnight (used for the overdue pass).

The trigger is an explicit object with a start/stop lifecycle; nothing is
scheduled on import. At most one run of the task is in flight at any time:
a run requested while another is still going is skipped, not queued.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from src.audit.logger import AuditLogger
from src.models.audit import AuditEventBuilder


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from `now` until the next local midnight."""
    midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
    return (midnight - now).total_seconds()


class DailyTrigger:
    """
    Cancellable midnight scheduler for one task.

    Lifecycle:
        trigger = DailyTrigger("overdue_pass", engine.refresh_statuses)
        trigger.start()     # arms the timer for the next midnight
        trigger.run_now()   # e.g. on app resume; skipped if already running
        trigger.stop()      # cancels the pending timer
    """

    def __init__(
        self,
        name: str,
        task: Callable[[], object],
        clock: Callable[[], datetime] = datetime.now,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._name = name
        self._task = task
        self._clock = clock
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger("obligations.scheduler")

        self._timer: Optional[threading.Timer] = None
        self._state_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._running = False
        self.last_run: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        """True while the timer is armed."""
        return self._running

    @property
    def next_run(self) -> Optional[datetime]:
        if not self._running:
            return None
        now = self._clock()
        return now + timedelta(seconds=seconds_until_midnight(now))

    def start(self) -> None:
        """Arm the timer for the next midnight. Calling twice is harmless."""
        with self._state_lock:
            if self._running:
                return
            self._running = True
            self._arm()
        self._logger.info("daily_trigger_started", task=self._name)

    def stop(self) -> None:
        """Cancel the pending timer. A run already in progress finishes."""
        with self._state_lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._logger.info("daily_trigger_stopped", task=self._name)

    def run_now(self) -> bool:
        """
        Run the task immediately unless a run is already in flight.

        Returns:
            True if the task ran, False if it was skipped
        """
        if not self._run_lock.acquire(blocking=False):
            self._logger.info("daily_task_skipped", task=self._name)
            self._audit(AuditEventBuilder.daily_task(self._name, ran=False))
            return False

        try:
            self._task()
            self.last_run = self._clock()
            self._audit(AuditEventBuilder.daily_task(self._name, ran=True))
            return True
        except Exception as e:
            # A failed run is retried at the next midnight
            self._logger.error("daily_task_failed", task=self._name, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type="daily_task_failed",
                    error_message=str(e),
                    details={"exception": type(e).__name__},
                    entity_type="task",
                    entity_id=self._name,
                )
            return False
        finally:
            self._run_lock.release()

    def _arm(self) -> None:
        delay = seconds_until_midnight(self._clock())
        self._timer = threading.Timer(delay, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def _fire(self) -> None:
        self.run_now()
        with self._state_lock:
            if self._running:
                self._arm()

    def _audit(self, event) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)
