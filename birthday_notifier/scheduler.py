"""Recurring trigger that runs the birthday scan."""
from __future__ import annotations

import enum
import logging
import re
import threading
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.job import Job
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .config import ConfigError
from .utils import fields

logger = logging.getLogger(__name__)

JOB_ID = "birthday-scan"

DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * sun",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_DURATION_PART = re.compile(r"(\d+)([hms])")
_DURATION_UNITS = {"h": 3600, "m": 60, "s": 1}


class SchedulerError(RuntimeError):
    """Raised on an illegal scheduler state transition."""


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def parse_duration(text: str) -> int:
    """Parse ``1h30m``-style durations into seconds."""

    compact = text.replace(" ", "")
    parts = _DURATION_PART.findall(compact)
    if not parts or "".join(number + unit for number, unit in parts) != compact:
        raise ValueError(f"invalid duration {text!r}")
    seconds = sum(int(number) * _DURATION_UNITS[unit] for number, unit in parts)
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return seconds


def parse_schedule(expression: str, timezone: str = "UTC") -> BaseTrigger:
    """Turn a cron expression into an APScheduler trigger.

    Accepts standard five-field crontab lines, six-field lines with a leading
    seconds field, the ``@daily``-style descriptors and ``@every <duration>``.

    Raises:
        ConfigError: if the expression (or timezone) cannot be parsed.
    """

    text = " ".join(expression.split())
    try:
        if text.startswith("@every "):
            return IntervalTrigger(seconds=parse_duration(text[len("@every "):]), timezone=timezone)
        text = DESCRIPTORS.get(text, text)
        parts = text.split(" ")
        if len(parts) == 5:
            return CronTrigger.from_crontab(text, timezone=timezone)
        if len(parts) == 6:
            second, minute, hour, day, month, day_of_week = parts
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week,
                timezone=timezone,
            )
        raise ValueError(f"expected 5 or 6 fields, got {len(parts)}")
    except (ValueError, TypeError, LookupError) as exc:
        raise ConfigError(f"Invalid schedule expression {expression!r}: {exc}") from exc


class BirthdayScheduler:
    """Run ``job`` on every tick of a cron schedule; ``IDLE -> RUNNING -> STOPPED``.

    Ticks never overlap: a tick firing while the previous scan is still
    running is dropped and logged.
    """

    def __init__(
        self,
        expression: str,
        job: Callable[[], object],
        *,
        run_on_startup: bool = False,
        timezone: str = "UTC",
    ) -> None:
        self.expression = expression
        self.run_on_startup = run_on_startup
        self.timezone = timezone
        self._job = job
        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._tick_gate = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None
        self.job: Optional[Job] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def start(self) -> None:
        with self._state_lock:
            if self._state is not SchedulerState.IDLE:
                raise SchedulerError(f"Cannot start a scheduler that is {self._state.value}")
            trigger = parse_schedule(self.expression, self.timezone)

        if self.run_on_startup:
            logger.info("Running the birthday scan on startup")
            self.run_once()

        with self._state_lock:
            if self._state is not SchedulerState.IDLE:
                raise SchedulerError("Scheduler was stopped during the startup scan")
            scheduler = BackgroundScheduler(timezone=self.timezone)
            logger.info("Adding function to the CRON", extra=fields(cron_exp=self.expression))
            self.job = scheduler.add_job(
                self.run_once,
                trigger=trigger,
                id=JOB_ID,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=None,
            )
            scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)

            logger.info("Starting the CRON")
            scheduler.start()
            self._scheduler = scheduler
            self._state = SchedulerState.RUNNING

        logger.info("Next birthday scan scheduled", extra=fields(next_run=self.job.next_run_time))

    def run_once(self) -> bool:
        """Run one scan unless one is already running or the scheduler is stopped.

        Returns ``True`` if the job ran. Errors from the job are logged and swallowed
        so that the recurring schedule survives them.
        """

        if self._state is SchedulerState.STOPPED:
            logger.debug("Scheduler stopped, ignoring tick")
            return False
        if not self._tick_gate.acquire(blocking=False):
            logger.warning("Previous birthday scan still running, dropping this tick")
            return False
        try:
            self._job()
        except Exception:
            logger.exception("Birthday scan failed")
        finally:
            self._tick_gate.release()
        return True

    def stop(self) -> bool:
        """Halt the recurring trigger, waiting for an in-flight scan.

        Returns ``False`` if the scheduler was already stopped.
        """

        with self._state_lock:
            if self._state is SchedulerState.STOPPED:
                return False
            previous, self._state = self._state, SchedulerState.STOPPED
            scheduler, self._scheduler = self._scheduler, None

        if previous is SchedulerState.RUNNING and scheduler is not None:
            logger.info("Stopping the CRON")
            scheduler.shutdown(wait=True)
            logger.info("CRON stopped")
        else:
            logger.debug("Scheduler stopped before it was started")
        return True

    def _on_max_instances(self, event: JobSubmissionEvent) -> None:
        logger.warning(
            "Previous birthday scan still running, tick skipped",
            extra=fields(job_id=event.job_id, scheduled_run_times=len(event.scheduled_run_times)),
        )
