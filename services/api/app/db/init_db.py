from __future__ import annotations

import logging
import os

from services.api.app.db.database import get_engine
from services.api.app.db.models import Base

logger = logging.getLogger("backoffice.db")


def init_db() -> None:
    if os.getenv("BACKOFFICE_DB_AUTO_CREATE", "true").strip().lower() not in {"1", "true", "yes", "y"}:
        logger.info("BACKOFFICE_DB_AUTO_CREATE is off; skipping table creation")
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
