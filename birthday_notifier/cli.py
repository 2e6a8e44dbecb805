"""Command line entry points for the birthday notifier."""
from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from .config import AppConfig, ConfigError, load_config
from .contacts import ContactsError, load_contacts
from .notify import build_backends
from .runner import Runner
from .utils import configure_logging, today_local


def _load_config(path: Optional[Path]) -> AppConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc


def _build_runner(args: argparse.Namespace) -> Runner:
    cfg = _load_config(args.config)
    configure_logging(cfg.logging.level, cfg.logging.file, cfg.logging.json)
    try:
        contacts = load_contacts(cfg.contacts.csv_path)
        backends = build_backends(cfg.backends)
    except (ConfigError, ContactsError) as exc:
        raise SystemExit(str(exc)) from exc
    return Runner(cfg, contacts, backends)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from exc


def cmd_run(args: argparse.Namespace) -> None:
    run = _build_runner(args)
    try:
        run.serve()
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc


def cmd_check(args: argparse.Namespace) -> None:
    run = _build_runner(args)
    report = run.run_scan(args.date)
    print(f"Scan for {report.today.isoformat()}: {len(report.matches)} birthday(s)")
    for contact in report.matches:
        age = contact.get_age(report.today)
        print(f"  birthday: {contact.full_name}" + (f" ({age})" if age is not None else ""))
    for contact in report.leap_year_notices:
        print(f"  leap-year notice: {contact.full_name}")
    for outcome in report.deliveries:
        line = f"  {outcome.kind}/{outcome.vendor} -> {outcome.contact.full_name}: {outcome.status}"
        if outcome.err_summary:
            line += f" ({outcome.err_summary})"
        print(line)


def cmd_contacts(args: argparse.Namespace) -> None:
    run = _build_runner(args)
    if not run.contacts:
        print("No contacts loaded")
        return
    today = today_local(run.config.schedule.timezone)
    for contact in run.contacts:
        birthdate = contact.birthdate.isoformat() if contact.birthdate else f"--{contact.birth_month:02d}-{contact.birth_day:02d}"
        age = contact.get_age(today)
        print(f"{contact.full_name:<30} {birthdate:<10} age={age if age is not None else '-'}")


def cmd_backends(args: argparse.Namespace) -> None:
    run = _build_runner(args)
    for index, backend in enumerate(run.backends, start=1):
        print(f"{index}. kind={backend.kind} vendor={backend.vendor}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan contacts on a cron schedule and wish their birthdays")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sub_run = subparsers.add_parser("run", help="Start the scheduler and wait for SIGINT/SIGTERM")
    sub_run.set_defaults(func=cmd_run)

    sub_check = subparsers.add_parser("check", help="Scan the contacts once and send notifications")
    sub_check.add_argument("--date", type=_parse_date, default=None, help="Scan as if today were YYYY-MM-DD")
    sub_check.set_defaults(func=cmd_check)

    sub_contacts = subparsers.add_parser("contacts", help="List loaded contacts")
    sub_contacts.set_defaults(func=cmd_contacts)

    sub_backends = subparsers.add_parser("backends", help="List configured notification backends")
    sub_backends.set_defaults(func=cmd_backends)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Callable[[argparse.Namespace], None] = getattr(args, "func")
    func(args)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
