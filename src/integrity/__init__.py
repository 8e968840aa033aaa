"""
Data Integrity Validation.

Detects and repairs integrity issues in companies, brokerages and stock ratings:
- Orphaned stock ratings
- Inconsistent or non-normalized values
- Duplicate business keys
- Business rule violations
"""

from src.integrity.integrity_logger import IntegrityLogger
from src.integrity.models import (
    BusinessReport,
    ConsistencyReport,
    DuplicateReport,
    IntegrityReport,
    IntegrityStatus,
    OrphanReport,
    RepairReport,
    Severity,
    UnrepairableIssue,
)
from src.integrity.report_aggregator import aggregate
from src.integrity.service import IntegrityValidationError, IntegrityValidationService
from src.integrity.validation_config import ValidationConfig, default_validation_config

__all__ = [
    # Service
    "IntegrityValidationService",
    "IntegrityValidationError",
    "IntegrityLogger",
    # Configuration
    "ValidationConfig",
    "default_validation_config",
    # Reports
    "IntegrityReport",
    "IntegrityStatus",
    "Severity",
    "OrphanReport",
    "ConsistencyReport",
    "DuplicateReport",
    "BusinessReport",
    "RepairReport",
    "UnrepairableIssue",
    "aggregate",
]
