"""CLI utility for case maintenance: list, verify, export, clear, oracle settings."""

import argparse
import sys

from src.config.llm_config import LLMConfig, load_llm_config, save_llm_config
from src.config.runtime_store import clear_runtime_state
from src.config_loader import get_settings
from src.export import seal_report, write_case_file
from src.ledger import CaseStore, ReportNotFoundError


def cmd_list(store: CaseStore, args) -> int:
    reports, _ = store.get_all_indexed()
    evidence = store.list_evidence()

    print(f"Reports ({len(reports)}):")
    for report in reports:
        print(f"  Chapter {report.chapter_index}: {report.title} [{report.id}]")
        if args.verbose:
            print(f"    Findings: {len(report.findings)}  Contradictions: {len(report.contradictions)}")

    print(f"\nEvidence ({len(evidence)}):")
    for item in evidence:
        print(f"  {item.name} [{item.id}] {item.sha512[:16]}...")
    return 0


def cmd_verify(store: CaseStore, args) -> int:
    result = store.verify_integrity()
    if result.ok:
        print("✓ Case store is consistent")
        return 0

    print("✗ Integrity problems found")
    for label, values in (
        ("Tampered evidence", result.tampered_evidence),
        ("Dangling index entries", result.dangling_index_ids),
        ("Reports missing from index", result.orphan_report_ids),
        ("Missing chapters", result.chapter_gaps),
    ):
        if values:
            print(f"  {label}: {', '.join(str(v) for v in values)}")
    return 1


def cmd_export(store: CaseStore, args) -> int:
    if args.report_id:
        try:
            path = seal_report(store, args.report_id, args.output)
        except ReportNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        try:
            path = write_case_file(store, args.output)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    print(f"✓ Wrote {path}")
    return 0


def cmd_clear(store: CaseStore, args) -> int:
    if not args.yes:
        answer = input("Delete ALL evidence and reports? [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted.")
            return 1
    store.clear_all(also_delete_merged=args.also_delete_merged)
    print("✓ Case store cleared")
    return 0


def cmd_oracle(store: CaseStore, args) -> int:
    if args.reset:
        clear_runtime_state()
        print("✓ Oracle settings reset to environment and defaults")
    elif any(v is not None for v in (args.provider, args.base_url, args.api_key, args.model)):
        current = load_llm_config()
        save_llm_config(
            LLMConfig(
                provider=args.provider or current.provider,
                base_url=args.base_url or current.base_url,
                api_key=current.api_key if args.api_key is None else args.api_key,
                model_name=args.model or current.model_name,
            )
        )
        print("✓ Oracle settings saved")

    config = load_llm_config()
    print(f"Provider: {config.provider}")
    print(f"Base URL: {config.base_url}")
    print(f"Model:    {config.model_name}")
    print(f"API key:  {'set' if config.api_key else 'not set'}")
    return 0


def main():
    """Main entry point for case CLI."""
    parser = argparse.ArgumentParser(description="Inspect and maintain the case store")
    parser.add_argument("--config", type=str, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List reports in chapter order and stored evidence")
    p_list.add_argument("--verbose", "-v", action="store_true")
    p_list.set_defaults(func=cmd_list)

    p_verify = sub.add_parser("verify", help="Audit digests, index and chapter continuity")
    p_verify.set_defaults(func=cmd_verify)

    p_export = sub.add_parser("export", help="Export the merged case file or one sealed report")
    p_export.add_argument("--report-id", type=str, help="Seal a single report instead")
    p_export.add_argument("--output", type=str, help="Output directory (default from config)")
    p_export.set_defaults(func=cmd_export)

    p_clear = sub.add_parser("clear", help="Delete all evidence, reports and the index")
    p_clear.add_argument(
        "--also-delete-merged",
        action="store_true",
        help="Also delete exported case files",
    )
    p_clear.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    p_clear.set_defaults(func=cmd_clear)

    p_oracle = sub.add_parser("oracle", help="Show or change the analysis oracle endpoint")
    p_oracle.add_argument("--provider", choices=["openai_compatible", "ollama"])
    p_oracle.add_argument("--base-url", type=str, help="Endpoint base URL")
    p_oracle.add_argument("--api-key", type=str, help="API key (empty string clears it)")
    p_oracle.add_argument("--model", type=str, help="Model name")
    p_oracle.add_argument("--reset", action="store_true", help="Forget saved settings")
    p_oracle.set_defaults(func=cmd_oracle)

    args = parser.parse_args()

    store = CaseStore(settings=get_settings(args.config))
    try:
        code = args.func(store, args)
    finally:
        store.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
