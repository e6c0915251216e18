from __future__ import annotations

import logging
import os

from alembic import command
from alembic.config import Config

ALEMBIC_CONFIG = os.getenv("ALEMBIC_CONFIG", "alembic.ini")

logger = logging.getLogger(__name__)


def run_upgrade_head(config_path: str = ALEMBIC_CONFIG) -> None:
    logger.info("upgrading org chart schema to head using %s", config_path)
    command.upgrade(Config(config_path), "head")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_upgrade_head()
