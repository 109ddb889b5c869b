"""
Bring the documents schema up to date with a single command.

Usage:
    python migrate_once.py
"""

from pathlib import Path

from alembic import command
from alembic.config import Config

from gestor.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> None:
    """Upgrade the database schema to the latest revision."""
    setup_logging()
    cfg = Config(str(Path(__file__).parent / "alembic.ini"))
    logger.info("Running migrations", target="head")
    command.upgrade(cfg, "head")
    logger.info("Migrations complete")


if __name__ == "__main__":
    main()
