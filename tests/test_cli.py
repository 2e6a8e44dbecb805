import pytest

from birthday_notifier import cli


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    (tmp_path / "contacts.csv").write_text(
        "firstname,lastname,birthdate\n"
        "Ada,Lovelace,1815-12-10\n"
        "Leap,Baby,1996-02-29\n"
        "Grace,Hopper,--12-09\n",
        encoding="utf-8",
    )
    path = tmp_path / "config.toml"
    path.write_text(
        """
[schedule]
cron = "0 9 * * *"
handle_leap_years = true

[contacts]
csv_path = "contacts.csv"

[[backends]]
type = "console"
vendor = "terminal"
""",
        encoding="utf-8",
    )
    return path


def test_check_reports_matches_and_deliveries(config_path, capsys):
    cli.main(["--config", str(config_path), "check", "--date", "2024-12-10"])
    out = capsys.readouterr().out
    assert "Scan for 2024-12-10: 1 birthday(s)" in out
    assert "birthday: Ada Lovelace (209)" in out
    assert "NOTIFICATION: Today is Ada Lovelace's birthday (209 years old)." in out
    assert "console/terminal -> Ada Lovelace: success" in out


def test_check_on_march_first_lists_leap_notice(config_path, capsys):
    cli.main(["--config", str(config_path), "check", "--date", "2023-03-01"])
    out = capsys.readouterr().out
    assert "0 birthday(s)" in out
    assert "leap-year notice: Leap Baby" in out
    assert "NOTIFICATION" not in out


def test_contacts_and_backends_listing(config_path, capsys):
    cli.main(["--config", str(config_path), "contacts"])
    out = capsys.readouterr().out
    assert "Ada Lovelace" in out and "1815-12-10" in out
    assert "--12-09" in out and "age=-" in out

    cli.main(["--config", str(config_path), "backends"])
    assert capsys.readouterr().out.strip() == "1. kind=console vendor=terminal"


def test_config_error_exits(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    path = tmp_path / "config.toml"
    path.write_text("[contacts]\ncsv_path = 'missing.csv'\n[[backends]]\ntype = 'console'\n", encoding="utf-8")
    with pytest.raises(SystemExit, match="Contacts file not found"):
        cli.main(["--config", str(path), "check"])


def test_bad_date_argument(config_path):
    with pytest.raises(SystemExit):
        cli.main(["--config", str(config_path), "check", "--date", "yesterday"])


def test_unknown_log_level_exits(tmp_path):
    (tmp_path / "contacts.csv").write_text("firstname,lastname,birthdate\n", encoding="utf-8")
    path = tmp_path / "config.toml"
    path.write_text(
        "[logging]\nlevel = 'VERBOSE'\n[contacts]\ncsv_path = 'contacts.csv'\n[[backends]]\ntype = 'console'\n",
        encoding="utf-8",
    )
    with pytest.raises(SystemExit, match="logging.level"):
        cli.main(["--config", str(path), "backends"])
