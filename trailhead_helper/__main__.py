"""CLI for the Trailhead Helper MCP server: python -m trailhead_helper"""

from __future__ import annotations

import argparse
import atexit
import logging
import os
import signal
import sys

from trailhead_helper.config import HelperConfig
from trailhead_helper.errors import BrowserLaunchError
from trailhead_helper.mcp.server import create_server
from trailhead_helper.session import Session

logger = logging.getLogger("trailhead_helper")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trailhead-helper",
        description="Trailhead Helper: MCP server (stdio) for Trailhead lessons and quizzes",
    )
    parser.add_argument(
        "--cdp-host", type=str, default=None, help="DevTools host (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--cdp-port",
        type=int,
        action="append",
        default=None,
        help="DevTools port to probe; repeat for several (default: 9222, 9223, 9224)",
    )
    parser.add_argument(
        "--profile-dir", type=str, default=None, help="Profile directory for a launched browser"
    )
    parser.add_argument("--browser", type=str, default=None, help="Chrome/Chromium binary")
    parser.add_argument("--headless", action="store_true", help="Launch the browser headless")
    parser.add_argument(
        "--domain",
        type=str,
        action="append",
        default=None,
        help="Site domain for tab selection; repeat for several "
        "(default: trailhead.salesforce.com)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.environ.get("TRAILHEAD_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: INFO)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> HelperConfig:
    """Environment settings, overridden by any flags given."""
    config = HelperConfig.from_env()
    if args.cdp_host:
        config.cdp_host = args.cdp_host
    if args.cdp_port:
        config.cdp_ports = list(args.cdp_port)
    if args.profile_dir:
        config.profile_dir = args.profile_dir
    if args.browser:
        config.binary_path = args.browser
    if args.headless:
        config.headless = True
    if args.domain:
        config.domains = [d.lower() for d in args.domain]
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # stdout carries the MCP stream; logs go to stderr only.
    logging.basicConfig(
        level=args.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session = Session(config_from_args(args))
    atexit.register(session.close)

    def _shutdown(signum: int, frame: object) -> None:
        logger.info("Received %s, closing browser before exit...", signal.Signals(signum).name)
        session.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _shutdown)

    def _fatal(exc: BrowserLaunchError) -> None:
        logger.critical("Fatal error: %s", exc)
        session.close()
        logging.shutdown()
        # The SDK would swallow SystemExit raised from a tool.
        os._exit(1)

    server = create_server(session, on_fatal=_fatal)
    logger.info("Trailhead Helper MCP Server running on stdio")
    try:
        server.run(transport="stdio")
    except Exception:
        logger.exception("Fatal error in main()")
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
