"""CLI utility for cross-report contradiction analysis."""

import argparse
import sys

from src.analysis import ContradictionEngine, InsufficientSelectionError, analyze_selection
from src.config_loader import get_settings
from src.ledger import CaseStore


def format_contradiction(contradiction, index: int) -> str:
    lines = [
        f"{index}. [{contradiction.type}] {contradiction.verification}",
        f"   {contradiction.explanation}",
    ]
    if contradiction.claim_a or contradiction.claim_b:
        lines.append(f"   A: {contradiction.claim_a or '-'}")
        lines.append(f"   B: {contradiction.claim_b or '-'}")
    lines.append(f"   Sources: {', '.join(contradiction.sources)}")
    return "\n".join(lines)


def main():
    """Main entry point for contradictions CLI."""
    parser = argparse.ArgumentParser(
        description="Analyze reports covering the selected evidence for contradictions"
    )
    parser.add_argument(
        "evidence_ids",
        nargs="*",
        help="Evidence ids to select (default: all evidence)",
    )
    parser.add_argument(
        "--jurisdiction",
        type=str,
        choices=["Global", "UAE", "SA", "EU"],
        help="Jurisdiction of the new report (default from config)",
    )
    parser.add_argument(
        "--timezone",
        type=str,
        help="Timezone of the new report (default from config)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for pass shuffling",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to config.yaml",
    )

    args = parser.parse_args()

    settings = get_settings(args.config)
    store = CaseStore(settings=settings)
    try:
        selected = set(args.evidence_ids) or {e.id for e in store.list_evidence()}
        report = analyze_selection(
            store,
            selected,
            jurisdiction=args.jurisdiction or settings.case.jurisdiction,
            timezone_name=args.timezone or settings.case.timezone,
            engine=ContradictionEngine(settings=settings, seed=args.seed),
        )
    except InsufficientSelectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        store.close()

    print("=" * 60)
    print(f"Chapter {report.chapter_index}: {report.title}")
    print("=" * 60)
    if not report.contradictions:
        print("No contradictions found.")
    for i, contradiction in enumerate(report.contradictions, 1):
        print(format_contradiction(contradiction, i))
        print()


if __name__ == "__main__":
    main()
