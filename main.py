"""
Entry point for the shelfsim web server and terminal tools.

Usage:
    python main.py serve                          # Start the web app and API
    python main.py serve --port 9000              # Web app on a custom port
    python main.py seed                           # Load configs/seed.yaml
    python main.py seed --file path/to.yaml       # Load a custom seed file
    python main.py survey --variant 3             # Take survey 3 in the terminal
    python main.py survey --variant 3 --seed 42   # Fixed card order
    python main.py report --run 3                 # Run analysis as tables
    python main.py report --run 3 --format csv    # Export the analysis
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from shelfsim.config import get_settings
from shelfsim.errors import ShelfSimError
from shelfsim.logging_config import setup_logging


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="shelfsim: digital shelf surveys with conjoint price testing",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Logging level (default: {settings.log_level})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ── Subcommand: serve (web interface) ─────────────────────────
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the web app and JSON API",
    )
    serve_parser.add_argument(
        "--host",
        default=settings.server_host,
        help=f"Host to bind to (default: {settings.server_host})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=settings.server_port,
        help=f"Port to listen on (default: {settings.server_port})",
    )
    serve_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for human survey cards",
    )

    # ── Subcommand: seed ────────────────────────────────────────────
    seed_parser = subparsers.add_parser(
        "seed",
        help="Load demo data into the database",
    )
    seed_parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Path to YAML seed file (default: configs/seed.yaml)",
    )

    # ── Subcommand: survey ──────────────────────────────────────────
    survey_parser = subparsers.add_parser(
        "survey",
        help="Take a shelf survey in the terminal",
    )
    survey_parser.add_argument(
        "--variant",
        type=int,
        required=True,
        help="Survey id (shelf variant id)",
    )
    survey_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible choice cards",
    )

    # ── Subcommand: report ──────────────────────────────────────────
    report_parser = subparsers.add_parser(
        "report",
        help="Show or export the analysis of a survey run",
    )
    report_parser.add_argument(
        "--run",
        type=int,
        required=True,
        help="Survey run id",
    )
    report_parser.add_argument(
        "--format",
        choices=["table", "json", "csv"],
        default="table",
        help="Terminal tables, or a json/csv export (default: table)",
    )
    report_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory for json/csv exports (default: ./data/exports)",
    )

    args = parser.parse_args()
    setup_logging(log_level=args.log_level)

    try:
        if args.command == "serve":
            import uvicorn
            from web.app import create_app

            app = create_app(settings, seed=args.seed)
            print(f"Starting shelfsim at http://{args.host}:{args.port}")
            uvicorn.run(app, host=args.host, port=args.port)
        elif args.command == "seed":
            if args.file is not None and not args.file.exists():
                print(f"Error: seed file not found: {args.file}", file=sys.stderr)
                sys.exit(1)

            from cli.seed import run_seed
            run_seed(args.file)
        elif args.command == "survey":
            from cli.survey import run_survey
            run_survey(args.variant, seed=args.seed)
        elif args.command == "report":
            from cli.report import run_report
            run_report(args.run, fmt=args.format, output_dir=args.output)
    except ShelfSimError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
