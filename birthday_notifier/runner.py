"""Facade for running application workflows."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from .config import AppConfig
from .contact import Contact
from .dispatch import Dispatcher
from .lifecycle import LifecycleManager
from .notify import NotificationBackend
from .scan import ScanEngine, ScanReport
from .scheduler import BirthdayScheduler
from .utils import today_local


@dataclass
class Runner:
    """High level runner wiring contacts, backends and the schedule together."""

    config: AppConfig
    contacts: Sequence[Contact]
    backends: Sequence[NotificationBackend]
    engine: ScanEngine = field(init=False)

    def __post_init__(self) -> None:
        self.engine = ScanEngine(
            self.contacts,
            Dispatcher(self.backends),
            handle_leap_years=self.config.schedule.handle_leap_years,
        )

    def run_scan(self, today: Optional[date] = None) -> ScanReport:
        return self.engine.scan(today or today_local(self.config.schedule.timezone))

    def build_scheduler(self) -> BirthdayScheduler:
        schedule = self.config.schedule
        return BirthdayScheduler(
            schedule.cron,
            self.run_scan,
            run_on_startup=schedule.run_on_startup,
            timezone=schedule.timezone,
        )

    def serve(self) -> None:
        """Run until SIGINT/SIGTERM."""

        LifecycleManager(self.build_scheduler()).run()
