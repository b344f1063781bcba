"""
Command line launcher for the AutoQA web UI.

The application itself is graphical; this entry point configures logging
and settings location, then hands over to ``streamlit run``.
"""

from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional
import logging

APP_PATH = Path(__file__).with_name("app.py")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Reduce noise from some libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('google').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="AutoQA - generate QA test scenarios from requirements or flowcharts with LLMs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the web UI on the default port
  autoqa

  # Custom port, settings file and debug logging
  autoqa --port 8600 --settings-file ./autoqa-settings.json -v
        """
    )
    parser.add_argument(
        '--port',
        type=int,
        default=8501,
        help='Port for the web UI (default: 8501)'
    )
    parser.add_argument(
        '--settings-file',
        type=Path,
        help='Where credential and endpoint settings are persisted '
             '(default: ~/.config/autoqa/settings.json)'
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging (raw model output is logged at debug level)'
    )
    return parser


def build_streamlit_argv(args: argparse.Namespace) -> List[str]:
    return [
        "streamlit", "run", str(APP_PATH),
        "--server.port", str(args.port),
    ]


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    # The app runs in the streamlit process and reads these back
    if args.settings_file:
        os.environ["AUTOQA_SETTINGS_FILE"] = str(args.settings_file)
    if args.verbose:
        os.environ["AUTOQA_VERBOSE"] = "1"

    from streamlit.web import cli as stcli

    logger.info(f"Starting AutoQA UI on port {args.port}")
    sys.argv = build_streamlit_argv(args)
    try:
        stcli.main()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    return 0


if __name__ == '__main__':
    sys.exit(main())
