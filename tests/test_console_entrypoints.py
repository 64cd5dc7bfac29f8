"""Verify CLI modules expose main(), kraken-ticker --help works, and init/poll run end to end."""

from __future__ import annotations

import sqlite3
import subprocess
import sys
from importlib import import_module

import pytest

from tests.fakes.providers import FakeTickerProvider, valid_body

_CLI_MODULES = [
    "kraken_ticker.cli.init_db",
    "kraken_ticker.cli.poll",
    "kraken_ticker.cli.serve",
    "kraken_ticker.cli.main",
]


@pytest.fixture()
def cli_env(tmp_path, monkeypatch):
    """Isolate config and keep CLI logging setup away from pytest's handlers."""
    db = tmp_path / "cli.db"
    archive = tmp_path / "archives"
    monkeypatch.setenv("KRAKEN_TICKER_CONFIG", str(tmp_path / "absent.yaml"))
    # Registered so monkeypatch restores them after the CLI writes its overrides
    monkeypatch.setenv("KRAKEN_TICKER_DB_PATH", str(db))
    monkeypatch.setenv("KRAKEN_TICKER_ARCHIVE_DIR", str(archive))
    monkeypatch.setattr("kraken_ticker.cli.init_db.setup_logging", lambda args: None)
    monkeypatch.setattr("kraken_ticker.cli.poll.setup_logging", lambda args: None)
    return db, archive


@pytest.mark.parametrize("module_name", _CLI_MODULES)
def test_cli_module_has_main(module_name):
    mod = import_module(module_name)
    assert hasattr(mod, "main"), f"{module_name} missing main()"
    assert callable(mod.main), f"{module_name}.main not callable"


def test_cli_main_help_exits_zero():
    """cli.main.main(["--help"]) exits with 0 (in-process)."""
    from kraken_ticker.cli.main import main

    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0


def test_cli_main_without_command_prints_help(capsys):
    from kraken_ticker.cli.main import main

    assert main([]) == 0
    assert "poll" in capsys.readouterr().out


def test_kraken_ticker_help_exits_zero():
    """python -m kraken_ticker --help exits 0 and lists commands (subprocess)."""
    r = subprocess.run(
        [sys.executable, "-m", "kraken_ticker", "--help"],
        capture_output=True,
        text=True,
        timeout=30,
    )
    assert r.returncode == 0, (r.stdout or "") + (r.stderr or "")
    out = (r.stdout or "") + (r.stderr or "")
    for command in ("init", "poll", "serve", "api"):
        assert command in out


def test_init_creates_store(cli_env):
    db, archive = cli_env
    from kraken_ticker.cli.main import main

    assert main(["init", "--db", str(db), "--archive-dir", str(archive)]) == 0
    assert db.exists()
    assert archive.is_dir()
    conn = sqlite3.connect(str(db))
    try:
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert "Tickers" in tables


def test_init_bad_path_returns_one(cli_env, tmp_path):
    from kraken_ticker.cli.init_db import main

    assert main(["--db", str(tmp_path / "no" / "such" / "dir" / "x.db")]) == 1


def test_poll_once_writes_pairs(cli_env, monkeypatch):
    db, archive = cli_env
    fake = FakeTickerProvider({"BTCEUR": valid_body("XXBTZEUR"), "ETHEUR": valid_body("XETHZEUR")})
    monkeypatch.setattr("kraken_ticker.cli.poll.KrakenTickerProvider", lambda **kwargs: fake)
    from kraken_ticker.cli.poll import main

    rc = main(["--once", "--pair", "BTCEUR", "--pair", "ETHEUR", "--db", str(db), "--archive-dir", str(archive)])
    assert rc == 0
    assert sorted(fake.calls) == ["BTCEUR", "ETHEUR"]
    conn = sqlite3.connect(str(db))
    try:
        names = [r[0] for r in conn.execute("SELECT name FROM Tickers ORDER BY name")]
    finally:
        conn.close()
    assert names == ["XETHZEUR", "XXBTZEUR"]
    assert len(list(archive.glob("*.csv"))) == 2
