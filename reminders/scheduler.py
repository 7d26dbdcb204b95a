"""Fixed-interval scheduler running reminder sweeps on a background thread."""
import logging
import threading
from typing import Optional

from processor.models import SweepResult
from reminders.sweeper import ReminderSweeper

logger = logging.getLogger(__name__)


class SweepScheduler:
    """
    Run ReminderSweeper.sweep every interval until stopped.

    Ticks never overlap: a trigger arriving while a tick is still running is
    skipped. Exceptions from a tick are logged and the loop carries on.
    """

    def __init__(self, sweeper: ReminderSweeper, interval_seconds: float = 60,
                 wait_first: bool = False):
        self.sweeper = sweeper
        self.interval_seconds = interval_seconds
        self.wait_first = wait_first
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background sweep thread."""
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name='reminder-sweeper', daemon=True
        )
        self._thread.start()
        logger.info(
            f"Reminder system is active - checking every "
            f"{self.interval_seconds} seconds for due reminders"
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop scheduling new ticks and wait for the current one to finish.

        Args:
            timeout: Seconds to wait for the running tick, None to wait forever
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Sweep thread did not stop before timeout")
            else:
                self._thread = None
        logger.info("Reminder sweeper stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() is called. Returns True once stopped."""
        return self._stop_event.wait(timeout)

    def run_once(self) -> Optional[SweepResult]:
        """
        Run a single tick unless one is already in progress.

        Returns:
            The SweepResult, or None if the tick was skipped or failed
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous sweep tick still running, skipping")
            return None

        try:
            return self.sweeper.sweep()
        except Exception as e:
            logger.error(f"Error processing reminders: {e}", exc_info=True)
            return None
        finally:
            self._tick_lock.release()

    def _run(self) -> None:
        if self.wait_first and self._stop_event.wait(self.interval_seconds):
            return

        while not self._stop_event.is_set():
            self.run_once()
            if self._stop_event.wait(self.interval_seconds):
                break
