"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order
(rendering the migrations reconfigures logging from alembic.ini).
"""

import io
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory

from mysteria.db.base import Base

ROOT = Path(__file__).resolve().parents[1]


def _config(buffer: io.StringIO | None = None) -> Config:
    config = Config(str(ROOT / "alembic.ini"), output_buffer=buffer)
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return config


def test_single_linear_head() -> None:
    """Revisions form one chain ending at the latest revision."""
    script = ScriptDirectory.from_config(_config())
    assert script.get_heads() == ["004_admin_access"]
    chain = [rev.revision for rev in script.walk_revisions()]
    assert chain == [
        "004_admin_access",
        "003_mystery_challenge",
        "002_comments_reputation",
        "001_content_tables",
    ]


def test_upgrade_sql_creates_every_table() -> None:
    """Offline ``alembic upgrade head --sql`` renders DDL for every model table."""
    buffer = io.StringIO()
    command.upgrade(_config(buffer), "head", sql=True)
    sql = buffer.getvalue()
    for table in Base.metadata.tables:
        assert f"CREATE TABLE {table}" in sql, table
    assert "ck_comments_content_length" in sql
