"""Command-line entry point: ``python -m prove_perf``.

Currently one command, ``dashboard``, which regenerates the HTML dashboard
from the newest nested export in a results directory.
"""

import argparse
import sys
import webbrowser
from pathlib import Path

from loguru import logger

from prove_perf._dashboard import render_dashboard, save_dashboard
from prove_perf._errors import ExportFormatError
from prove_perf._export import (
    DEFAULT_PREFIX,
    find_latest_export,
    load_document,
    samples_from_nested,
)
from prove_perf._stats import GrandSummary, summarize_by_label

DEFAULT_RESULTS_DIR = Path("performance-results")
DEFAULT_DASHBOARD_NAME = "dashboard-prove-performance.html"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prove_perf",
        description="Performance tracking utilities",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    dashboard = subparsers.add_parser(
        "dashboard", help="Render a dashboard from the newest results file"
    )
    dashboard.add_argument(
        "--results-dir",
        type=Path,
        default=DEFAULT_RESULTS_DIR,
        help=f"Directory holding exported results (default: {DEFAULT_RESULTS_DIR})",
    )
    dashboard.add_argument(
        "--prefix",
        default=DEFAULT_PREFIX,
        help=f"Results file name prefix (default: {DEFAULT_PREFIX})",
    )
    dashboard.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Dashboard path (default: <results-dir>/{DEFAULT_DASHBOARD_NAME})",
    )
    dashboard.add_argument(
        "--open", action="store_true", help="Open the dashboard in a browser"
    )
    return parser


def run_dashboard(args: argparse.Namespace) -> int:
    try:
        results_file = find_latest_export(args.results_dir, args.prefix)
    except FileNotFoundError as exc:
        logger.error(f"{exc}. Please run the benchmarks first.")
        return 1

    logger.info(f"Generating dashboard from: {results_file.name}")
    document = load_document(results_file)
    try:
        samples = samples_from_nested(document)
    except ExportFormatError as exc:
        logger.error(f"{results_file.name}: {exc}. Save results with shape='nested'.")
        return 1
    summaries = list(summarize_by_label(samples).values())
    totals = document.get("summary")
    grand = GrandSummary.from_dict(totals, total_tests=len(samples)) if totals else None

    metadata = document.get("metadata") or {}
    shown = {
        "Test Date": metadata.get("testDate", "unknown"),
        "Host": metadata.get("hostVersion", "unknown"),
        "Platform": f"{metadata.get('platform', 'unknown')} ({metadata.get('arch', 'unknown')})",
        "Total Tests": metadata.get("totalTests", len(samples)),
    }
    html = render_dashboard(samples, summaries, metadata=shown, grand_summary=grand)

    output = args.output or args.results_dir / DEFAULT_DASHBOARD_NAME
    save_dashboard(html, output)

    if args.open:
        webbrowser.open(output.resolve().as_uri())
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "dashboard":
        return run_dashboard(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
