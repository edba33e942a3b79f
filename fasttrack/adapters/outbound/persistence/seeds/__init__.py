# fasttrack/adapters/outbound/persistence/seeds/__init__.py

"""
Seeds for initial database content.

Run with ``python -m fasttrack.adapters.outbound.persistence.seeds``.
"""

import logging

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.seeds.catalog import (
    build_session_factory,
    run_catalog_seed,
    run_demo_editor_seed,
)

logger = logging.getLogger(__name__)


def run_all_seeds(session) -> None:
    """
    Run every seed in dependency order and commit.

    The demo editor is only created in development.
    """
    logger.info("Running seeds")
    run_catalog_seed(session)
    if settings.ENVIRONMENT == "development":
        run_demo_editor_seed(session)
    session.commit()
    logger.info("Seeds completed")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    session = build_session_factory()()
    try:
        run_all_seeds(session)
    except Exception as e:
        session.rollback()
        logger.error(f"Error running seeds: {str(e)}")
        raise
    finally:
        session.close()
