"""
Script to initialize database tables and the admin account.
Run this script after setting up your database connection.

Usage:
    python initialize_db.py

Set ADMIN_NAME, ADMIN_EMAIL and ADMIN_PASSWORD to create the admin on first run.
"""

import logging

import models  # noqa: F401  registers tables on Base.metadata
from config import ADMIN_EMAIL, ADMIN_NAME, ADMIN_PASSWORD, ENVIRONMENT, LOG_LEVEL
from core.db import PersistenceContext, create_tables
from core.logging import configure_logging
from domains.admins.service import create_admin

logger = logging.getLogger(__name__)


def init_db(persistence: PersistenceContext = None):
    """Initialize database tables and the admin account"""
    persistence = persistence or PersistenceContext()
    with persistence.session() as db:
        create_tables(bind=db.get_bind())

    if not (ADMIN_EMAIL and ADMIN_PASSWORD):
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set, skipping admin creation")
        return

    result = persistence.run(create_admin, ADMIN_NAME or "Admin", ADMIN_EMAIL, ADMIN_PASSWORD)
    if result.success:
        logger.info(f"Admin account created for {result.data['email']}")
    else:
        logger.info(f"Admin account not created: {result.message}")


if __name__ == "__main__":
    configure_logging(environment=ENVIRONMENT, log_level=LOG_LEVEL)
    init_db()
    logger.info("Database initialization complete!")
