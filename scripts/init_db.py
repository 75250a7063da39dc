"""Create the webhook tables in the configured database."""
from __future__ import annotations

from hookrelay.db.models import Base
from hookrelay.db.sync_session import close_sync_db, get_engine, init_sync_db
from hookrelay.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def init_db() -> None:
    setup_logging("INFO")
    init_sync_db()
    Base.metadata.create_all(get_engine())
    logger.info("Webhook tables created", tables=sorted(Base.metadata.tables))
    close_sync_db()


if __name__ == "__main__":
    init_db()
