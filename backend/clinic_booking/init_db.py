"""
Create the clinic schema on the configured database.

    python -m clinic_booking.init_db
"""

import logging

from sqlalchemy import inspect

from .database import engine as default_engine
from .models.generated import Base

logger = logging.getLogger(__name__)


# ======================================================
# SCHEMA
# ======================================================

def init_db(engine=None) -> list[str]:
    """Create missing tables. Returns the names of tables that were created."""
    engine = engine or default_engine
    existing = set(inspect(engine).get_table_names())

    Base.metadata.create_all(engine)

    created = [name for name in Base.metadata.tables if name not in existing]
    for name in created:
        logger.info("Created table %s", name)
    return created


# ======================================================
# ENTRYPOINT
# ======================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    tables = init_db()
    logger.info("Schema ready (%d new tables)", len(tables))
