import argparse
from pathlib import Path
from typing import Any

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from xplorium.database import Base

ROOT = Path(__file__).resolve().parents[1]


def alembic_config(db_path: Path) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.cmd_opts = argparse.Namespace(x=[f"dburl=sqlite+aiosqlite:///{db_path}"])
    return config


@pytest.fixture  # type: ignore[misc]
def migrated(tmp_path: Path) -> Any:
    db_path = tmp_path / "migrations.db"
    config = alembic_config(db_path)
    command.upgrade(config, "head")
    engine = create_engine(f"sqlite:///{db_path}")
    yield config, engine
    engine.dispose()


def test_migrated_schema_matches_models(migrated: Any) -> None:
    _, engine = migrated
    inspector = inspect(engine)

    for table in Base.metadata.sorted_tables:
        reflected = {c["name"]: c for c in inspector.get_columns(table.name)}
        assert set(reflected) == {c.name for c in table.columns}, table.name
        for column in table.columns:
            if column.primary_key:
                continue
            assert reflected[column.name]["nullable"] == column.nullable, (
                f"{table.name}.{column.name}"
            )


def test_users_is_active_is_required(migrated: Any) -> None:
    _, engine = migrated
    columns = {c["name"]: c for c in inspect(engine).get_columns("users")}
    assert columns["is_active"]["nullable"] is False


def test_downgrade_drops_tables(migrated: Any) -> None:
    config, engine = migrated
    command.downgrade(config, "base")
    remaining = set(inspect(engine).get_table_names()) - {"alembic_version"}
    assert remaining == set()
