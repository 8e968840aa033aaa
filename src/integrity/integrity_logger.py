"""
Integrity Logger.

Structured sink for validation and repair lifecycle events. The service
receives one through its constructor; the default writes through structlog.
"""

import uuid
from typing import Any

import structlog


class IntegrityLogger:
    """
    Lifecycle event sink backed by a structlog logger.

    Usage:
        sink = IntegrityLogger()
        sink.validation_start("orphans")
        sink.issue_detected("orphans", rating.id, reason="company not found")
    """

    def __init__(self, logger: Any = None):
        self._logger = logger or structlog.get_logger("src.integrity")

    def validation_start(self, category: str, **details: Any) -> None:
        self._logger.info("Validation started", category=category, **details)

    def validation_end(self, category: str, total: int, status: str, **details: Any) -> None:
        self._logger.info(
            "Validation completed",
            category=category,
            total=total,
            status=status,
            **details,
        )

    def issue_detected(self, category: str, entity_id: uuid.UUID, **details: Any) -> None:
        self._logger.debug(
            "Integrity issue detected",
            category=category,
            entity_id=str(entity_id),
            **details,
        )

    def repair_attempt(
        self, kind: str, entity_id: uuid.UUID, dry_run: bool, **details: Any
    ) -> None:
        if dry_run:
            self._logger.info(
                f"[DRY RUN] Would {kind}", entity_id=str(entity_id), **details
            )
        else:
            self._logger.info(
                "Repair attempt", kind=kind, entity_id=str(entity_id), **details
            )

    def repair_result(
        self,
        kind: str,
        entity_id: uuid.UUID,
        success: bool,
        attempts: int,
        error: str | None = None,
    ) -> None:
        if success:
            self._logger.info(
                "Repair succeeded", kind=kind, entity_id=str(entity_id), attempts=attempts
            )
        else:
            self._logger.error(
                "Repair failed",
                kind=kind,
                entity_id=str(entity_id),
                attempts=attempts,
                error=error,
            )

    def error(self, message: str, **details: Any) -> None:
        self._logger.error(message, **details)
