import logging
import subprocess
import sys
from pathlib import Path

from sqlalchemy import create_engine, inspect

from digital_download.core.database import DATABASE_URL

logger = logging.getLogger("digital-download")

CORE_TABLES = ("tokens", "assets", "volumes", "download_log")
BACKEND_DIR = Path(__file__).resolve().parents[2]


def _alembic(*args: str) -> None:
    subprocess.run(["alembic", *args], check=True, cwd=BACKEND_DIR)


def main():
    sync_url = DATABASE_URL.replace("+aiosqlite", "")
    engine = create_engine(sync_url)
    insp = inspect(engine)

    has_alembic = insp.has_table("alembic_version")
    existing_core_tables = any(insp.has_table(t) for t in CORE_TABLES)
    engine.dispose()

    if existing_core_tables and not has_alembic:
        logger.info("Existing tables detected without alembic_version, stamping head")
        _alembic("stamp", "head")
    else:
        logger.info("has_alembic=%s existing_core_tables=%s", has_alembic, existing_core_tables)

    _alembic("upgrade", "head")


def run():
    logging.basicConfig(level=logging.INFO, format="[db-migrate] %(message)s")
    try:
        main()
    except subprocess.CalledProcessError as e:
        logger.error(f"Alembic command failed: {e}")
        sys.exit(e.returncode)


if __name__ == "__main__":
    run()
