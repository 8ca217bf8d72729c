"""CLI utility for evidence intake: store, extract, analyze, file reports."""

import argparse
import sys
from pathlib import Path

from src.config_loader import get_settings
from src.ingestion.ingestion_pipeline import IngestionPipeline, configure_logging
from src.ledger import CaseStore


def main():
    """Main entry point for ingest CLI."""
    parser = argparse.ArgumentParser(
        description="Ingest evidence into the case store and file analysis reports"
    )
    parser.add_argument(
        "path",
        type=str,
        help="Path to file or folder to ingest",
    )
    parser.add_argument(
        "--jurisdiction",
        type=str,
        choices=["Global", "UAE", "SA", "EU"],
        help="Override the configured jurisdiction",
    )
    parser.add_argument(
        "--timezone",
        type=str,
        help="IANA timezone of this session (default from config)",
    )
    parser.add_argument(
        "--no-analysis",
        action="store_true",
        help="Store evidence and text only, skip the analysis oracle",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to config.yaml",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose output",
    )

    args = parser.parse_args()

    input_path = Path(args.path)
    if not input_path.exists():
        print(f"Error: Path does not exist: {input_path}", file=sys.stderr)
        sys.exit(1)

    settings = get_settings(args.config)
    log_file = configure_logging(settings.paths.logs)
    if args.no_analysis:
        settings.oracle.enabled = False

    print("Opening case store...")
    print(f"Log file: {log_file}")
    store = CaseStore(settings=settings)
    pipeline = IngestionPipeline(store, settings=settings)

    print(f"\nIngesting: {input_path}")
    kwargs = {"jurisdiction": args.jurisdiction, "timezone_name": args.timezone}
    if input_path.is_file():
        outcomes = pipeline.ingest_files([input_path], **kwargs)
    else:
        outcomes = pipeline.ingest_folder(input_path, **kwargs)

    store.close()

    if not outcomes:
        print("\nNo evidence was ingested.")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("Ingestion Summary")
    print("=" * 60)
    filed = [o for o in outcomes if o.report is not None]
    print(f"Evidence stored: {len(outcomes)}")
    print(f"Reports filed:   {len(filed)}")

    for i, outcome in enumerate(outcomes, 1):
        evidence = outcome.evidence
        print(f"\n{i}. {evidence.name} ({evidence.type}, {evidence.size} bytes)")
        print(f"   SHA-512: {evidence.sha512[:32]}...")
        if outcome.report:
            print(f"   Chapter {outcome.report.chapter_index}: {outcome.report.title}")
            if args.verbose:
                for finding in outcome.report.findings:
                    print(f"     - {finding.title} [{finding.verification}]")
        else:
            print(f"   {outcome.message}")


if __name__ == "__main__":
    main()
