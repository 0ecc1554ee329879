"""Database health check."""

import structlog

from tally.services.schema import HealthResponse
from tally.store import Database

log = structlog.get_logger(__name__)


class HealthService:
    def __init__(self, db: Database) -> None:
        self._db = db

    def check(self) -> HealthResponse:
        """{"database": "UP"} when the database answers queries, "DOWN" otherwise."""
        if self._db.ping():
            return {"database": "UP"}
        log.warning("health_check_failed", db_path=str(self._db.path))
        return {"database": "DOWN"}
