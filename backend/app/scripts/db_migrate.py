"""Bring the database schema to the latest alembic revision.

Databases created by ``Base.metadata.create_all`` at app startup have the
tables but no ``alembic_version`` row; those are stamped at head before the
upgrade so the initial revision is not replayed over them.

    python -m app.scripts.db_migrate
"""
import logging
import pathlib
import sys

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from app.core.database import DATABASE_URL, sync_url

logger = logging.getLogger("dropbin.migrate")

BACKEND_DIR = pathlib.Path(__file__).resolve().parents[2]
CORE_TABLES = ("buckets", "files")


def alembic_config() -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return config


def needs_stamp(url: str) -> bool:
    engine = create_engine(sync_url(url))
    try:
        insp = inspect(engine)
        has_alembic = insp.has_table("alembic_version")
        has_tables = any(insp.has_table(t) for t in CORE_TABLES)
    finally:
        engine.dispose()
    logger.info("has_alembic=%s existing_core_tables=%s", has_alembic, has_tables)
    return has_tables and not has_alembic


def migrate(url: str = DATABASE_URL, config: Config | None = None) -> None:
    config = config or alembic_config()
    if needs_stamp(url):
        logger.info("Existing tables without alembic_version, stamping head")
        command.stamp(config, "head")
    command.upgrade(config, "head")
    logger.info("Schema is at head")


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="[db-migrate] %(levelname)s %(message)s")
    try:
        migrate()
    except Exception:
        logger.exception("Migration failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
