"""
Integrity Validation Command.

Operator entry point: validates the database, prints a summary, optionally
repairs and writes a JSON report file.

Usage:
    python -m src.integrity.cli [--quick | --repair] [--no-dry-run]
                                [--format text|json] [--report PATH]

Exit status is 1 when the overall integrity status is CRITICAL.
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, TextIO

import structlog

from src.config.settings import Settings, get_settings
from src.core.retry_handler import RetryConfig
from src.graph.neo4j_client import StockGraphClient
from src.graph.repositories import (
    Neo4jBrokerageRepository,
    Neo4jCompanyRepository,
    Neo4jStockRatingRepository,
)
from src.integrity.models import IntegrityReport, IntegrityStatus, RepairReport
from src.integrity.service import IntegrityValidationService
from src.integrity.validation_config import ValidationConfig
from src.observability.logging import configure_logging

logger = structlog.get_logger(__name__)

RULE = "=" * 70
MAX_LISTED_UNREPAIRABLE = 10


@dataclass
class IntegrityValidationOptions:
    """What a validation run prints, repairs and writes."""

    generate_report: bool = True
    report_path: str = "./integrity_report.json"
    auto_repair: bool = False
    dry_run: bool = True
    show_details: bool = True
    output_format: Literal["json", "text"] = "json"

    @classmethod
    def default(cls) -> "IntegrityValidationOptions":
        return cls()

    @classmethod
    def quick_check(cls) -> "IntegrityValidationOptions":
        return cls(
            generate_report=False,
            report_path="",
            auto_repair=False,
            dry_run=False,
            show_details=False,
            output_format="text",
        )

    @classmethod
    def full_with_repair(cls) -> "IntegrityValidationOptions":
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return cls(
            generate_report=True,
            report_path=f"./integrity_report_{stamp}.json",
            auto_repair=True,
            dry_run=False,
            show_details=True,
            output_format="json",
        )


# =============================================================================
# Output
# =============================================================================


def print_integrity_summary(
    report: IntegrityReport, options: IntegrityValidationOptions, out: TextIO
) -> None:
    if options.output_format == "json" and options.show_details:
        print(json.dumps(report.to_dict(), indent=2), file=out)
        return

    print(RULE, file=out)
    print("DATABASE INTEGRITY VALIDATION SUMMARY", file=out)
    print(RULE, file=out)
    print(f"Overall Status: {report.overall_status.value}", file=out)
    print(f"Validation Duration: {report.duration_seconds:.3f}s", file=out)
    print(
        f"Total Issues: {report.total_issues} "
        f"(Critical: {report.critical_issues}, Warning: {report.warning_issues})",
        file=out,
    )

    if options.show_details:
        breakdown = report.summary.get("breakdown", {})
        for title, key in (
            ("ORPHANED RECORDS", "orphans"),
            ("CONSISTENCY ISSUES", "consistency"),
            ("DUPLICATE RECORDS", "duplicates"),
            ("BUSINESS RULE VIOLATIONS", "business_rules"),
        ):
            section = breakdown.get(key, {})
            print(f"\n{title}:", file=out)
            print(f"   Total: {section.get('total', 0)} (Status: {section.get('status')})", file=out)
            if "companies" in section:
                print(
                    f"   Companies: {section['companies']}, Brokerages: {section['brokerages']}, "
                    f"Ratings: {section['stock_ratings']}",
                    file=out,
                )

        if report.recommendations:
            print("\nRECOMMENDATIONS:", file=out)
            for i, recommendation in enumerate(report.recommendations, 1):
                print(f"   {i}. {recommendation}", file=out)

    print(RULE, file=out)


def print_repair_summary(
    report: RepairReport, options: IntegrityValidationOptions, out: TextIO
) -> None:
    print(RULE, file=out)
    print("AUTOMATIC REPAIR SUMMARY", file=out)
    print(RULE, file=out)
    print(f"Repair Status: {report.status.value}", file=out)
    print(f"Total Repairs: {report.total_repairs}", file=out)
    print(f"Orphans Removed: {report.repaired_orphans}", file=out)
    print(f"Duplicates Removed: {report.removed_duplicates}", file=out)
    print(f"Consistency Fixed: {report.fixed_inconsistencies}", file=out)
    print(f"Unrepairable: {len(report.unrepairable_issues)}", file=out)

    if report.dry_run:
        print("DRY RUN: No actual changes were made", file=out)

    if options.show_details and report.unrepairable_issues:
        print("\nUNREPAIRABLE ISSUES:", file=out)
        for i, issue in enumerate(report.unrepairable_issues[:MAX_LISTED_UNREPAIRABLE], 1):
            print(f"   {i}. {issue.type}: {issue.description}", file=out)
        hidden = len(report.unrepairable_issues) - MAX_LISTED_UNREPAIRABLE
        if hidden > 0:
            print(f"   ... and {hidden} more issues", file=out)

    print(RULE, file=out)


def build_report_document(
    integrity_report: IntegrityReport,
    repair_report: RepairReport | None,
    options: IntegrityValidationOptions,
    config: ValidationConfig,
) -> dict[str, Any]:
    document: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "validation_config": {"options": asdict(options), "rules": config.to_dict()},
        "integrity_report": integrity_report.to_dict(),
    }
    if repair_report is not None:
        document["repair_report"] = repair_report.to_dict()
    return document


# =============================================================================
# Driver
# =============================================================================


async def run_integrity_validation(
    service: IntegrityValidationService,
    options: IntegrityValidationOptions,
    timeout: float | None = None,
    out: TextIO = sys.stdout,
) -> int:
    """
    Validate, optionally repair, and write the report file.

    Returns:
        Process exit status: 1 when the initial validation is CRITICAL, else 0
    """
    report = await service.validate_full_integrity(timeout=timeout)
    print_integrity_summary(report, options, out)

    repair_report = None
    if options.auto_repair:
        repair_report = await service.repair_minor_issues(dry_run=options.dry_run)
        print_repair_summary(repair_report, options, out)

        if not options.dry_run and repair_report.total_repairs > 0:
            logger.info("Re-validating after repair")
            post_repair = await service.validate_full_integrity(timeout=timeout)
            print("\nPOST-REPAIR VALIDATION RESULTS:", file=out)
            print_integrity_summary(post_repair, options, out)

    if options.generate_report and options.report_path:
        document = build_report_document(report, repair_report, options, service.config)
        try:
            Path(options.report_path).write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write integrity report", path=options.report_path, error=str(e))
        else:
            logger.info("Integrity report saved", path=options.report_path)

    if report.overall_status == IntegrityStatus.CRITICAL:
        logger.error("Critical integrity issues found", critical_issues=report.critical_issues)
        return 1

    logger.info("Database integrity validation completed", status=report.overall_status.value)
    return 0


async def _run_against_neo4j(settings: Settings, options: IntegrityValidationOptions) -> int:
    client = StockGraphClient(settings.neo4j)
    await client.connect()
    try:
        await client.setup_schema()
        service = IntegrityValidationService(
            Neo4jCompanyRepository(client),
            Neo4jBrokerageRepository(client),
            Neo4jStockRatingRepository(client),
            config=ValidationConfig.from_settings(settings.integrity),
            retry_config=RetryConfig(
                max_retries=settings.integrity.repair_max_retries,
                initial_delay=settings.integrity.repair_initial_delay,
            ),
        )
        return await run_integrity_validation(
            service, options, timeout=settings.integrity.validation_timeout_seconds
        )
    finally:
        await client.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate stock rating data integrity")
    preset = parser.add_mutually_exclusive_group()
    preset.add_argument("--quick", action="store_true", help="Text summary only, no report file")
    preset.add_argument("--repair", action="store_true", help="Validate, repair and re-validate")
    parser.add_argument("--no-dry-run", action="store_true", help="Apply repairs instead of simulating")
    parser.add_argument("--format", choices=["json", "text"], help="Summary output format")
    parser.add_argument("--report", metavar="PATH", help="Write the JSON report to PATH")
    parser.add_argument("--no-details", action="store_true", help="Only print the headline summary")
    return parser


def options_from_args(args: argparse.Namespace) -> IntegrityValidationOptions:
    if args.quick:
        options = IntegrityValidationOptions.quick_check()
    elif args.repair:
        options = IntegrityValidationOptions.full_with_repair()
    else:
        options = IntegrityValidationOptions.default()

    if args.repair:
        options.dry_run = not args.no_dry_run
    if args.format:
        options.output_format = args.format
    if args.report:
        options.generate_report = True
        options.report_path = args.report
    if args.no_details:
        options.show_details = False
    return options


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(level=settings.log_level, format=settings.observability.log_format)
    return asyncio.run(_run_against_neo4j(settings, options_from_args(args)))


if __name__ == "__main__":
    sys.exit(main())
