"""Process lifecycle: start the scheduler, wait for a signal, stop exactly once."""
from __future__ import annotations

import logging
import signal
import threading
from typing import Dict, Iterable, Optional, Tuple

from .scheduler import BirthdayScheduler
from .utils import fields

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class LifecycleManager:
    """Own OS signal handling for a :class:`BirthdayScheduler`."""

    def __init__(
        self,
        scheduler: BirthdayScheduler,
        *,
        signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
        poll_interval: float = 0.5,
    ) -> None:
        self.scheduler = scheduler
        self.signals = tuple(signals)
        self.poll_interval = poll_interval
        self._shutdown_requested = threading.Event()
        self._stop_gate = threading.Lock()
        self._stopped = False
        self._started = False

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested.is_set()

    def request_shutdown(self, signum: Optional[int] = None, frame: object = None) -> None:
        """Signal handler. Only the first call has an effect."""

        name = signal.Signals(signum).name if signum is not None else "request"
        if self._shutdown_requested.is_set():
            logger.info("Shutdown already in progress, ignoring signal", extra=fields(signal=name))
            return
        logger.info("Received an interrupt, stopping services...", extra=fields(signal=name))
        self._shutdown_requested.set()

    def run(self) -> None:
        """Start the scheduler and block until a termination signal arrives."""

        previous = self._install_signal_handlers()
        try:
            self.scheduler.start()
            self._started = True
            logger.info("Waiting for birthdays to wish")
            while not self._shutdown_requested.wait(self.poll_interval):
                pass
        finally:
            self._shutdown()
            self._restore_signal_handlers(previous)

    def _shutdown(self) -> None:
        with self._stop_gate:
            if self._stopped:
                return
            self._stopped = True
        self.scheduler.stop()
        if self._started:
            logger.info("Services stopped")
        else:
            logger.error("Scheduler failed to start, exiting")

    def _install_signal_handlers(self) -> Dict[signal.Signals, object]:
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Not on the main thread, signal handlers not installed")
            return {}
        previous: Dict[signal.Signals, object] = {}
        for signum in self.signals:
            previous[signum] = signal.signal(signum, self.request_shutdown)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: Dict[signal.Signals, object]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)  # type: ignore[arg-type]
