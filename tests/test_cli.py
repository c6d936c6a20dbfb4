from click.testing import CliRunner
from sqlalchemy import create_engine, inspect

from fakes import sqlite_config
from rentals import cli as cli_module
from rentals.pool import PoolHandle


def test_init_db_creates_tables(tmp_path, monkeypatch):
    db_file = tmp_path / "cli.db"
    monkeypatch.setattr(cli_module, "PoolHandle", lambda settings: PoolHandle(config=sqlite_config(db_file)))

    result = CliRunner().invoke(cli_module.cli, ["init-db"])

    assert result.exit_code == 0, result.output
    engine = create_engine(f"sqlite:///{db_file}")
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"manager", "tenant", "location", "property", "lease", "application",
            "payment", "tenant_properties", "tenant_favorites"} <= tables


def test_serve_runs_app_factory(monkeypatch):
    calls = []
    monkeypatch.setattr(cli_module.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    result = CliRunner().invoke(cli_module.cli, ["serve", "--port", "9000"])

    assert result.exit_code == 0, result.output
    app, kwargs = calls[0]
    assert app == "rentals.main:create_app"
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
    assert kwargs["reload"] is False
