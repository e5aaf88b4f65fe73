"""
FivestaRSS - App Store & Google Play reviews as RSS

CLI entry point for polling reviews and serving the feeds.
"""

import argparse
import logging
import sys

import uvicorn

from fivestarss.orchestrator import PollingOrchestrator
from fivestarss.registry.app_registry import AppRegistry
from fivestarss.server import create_app
import config.settings as settings


def setup_logging(log_level: str = "INFO"):
    """Configure logging for the entire application."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler("fivestarss.log")
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FivestaRSS - App Store and Google Play reviews as RSS feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Poll every monitored app once and exit
  python main.py once

  # Poll forever (Ctrl+C to stop)
  python main.py run --interval-minutes 30

  # Serve /feeds/{file} and poll in the background
  python main.py serve --port 5000

Note: Set GOOGLE_PLAY_SERVICE_ACCOUNT_KEY_PATH to poll Google Play.
        """
    )

    parser.add_argument(
        "--apps",
        default=str(settings.MONITORED_APPS_PATH),
        help=f"Monitored apps JSON (default: {settings.MONITORED_APPS_PATH})"
    )

    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.LOG_LEVEL})"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("once", help="Run a single polling cycle")

    run_parser = subparsers.add_parser("run", help="Poll on an interval until interrupted")
    run_parser.add_argument(
        "--interval-minutes",
        type=float,
        default=settings.POLLING_INTERVAL_MINUTES,
        help=f"Minutes between cycles (default: {settings.POLLING_INTERVAL_MINUTES})"
    )

    serve_parser = subparsers.add_parser("serve", help="Serve feeds over HTTP")
    serve_parser.add_argument("--host", default=settings.SERVER_HOST)
    serve_parser.add_argument("--port", type=int, default=settings.SERVER_PORT)
    serve_parser.add_argument(
        "--no-poll",
        action="store_true",
        help="Only serve existing feeds, do not poll in the background"
    )

    return parser


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        registry = AppRegistry.load(args.apps)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid monitored apps configuration: {e}")
        sys.exit(1)

    print("=" * 60)
    print("FivestaRSS - App reviews as RSS")
    print("=" * 60)
    print(f"Monitored apps: {len(registry.get_all_apps())}")
    print(f"Feed directory: {settings.FEED_DIRECTORY}")
    print(f"Max reviews per feed: {settings.MAX_REVIEWS_PER_FEED}")
    print("=" * 60)
    print()

    poller = PollingOrchestrator.from_settings(registry)

    try:
        if args.command == "once":
            poller.run_cycle()

        elif args.command == "run":
            poller.polling_interval_seconds = args.interval_minutes * 60
            poller.run()

        elif args.command == "serve":
            app = create_app(
                registry=registry,
                feed_store=poller.reconciler.feed_store,
                poller=None if args.no_poll else poller
            )
            uvicorn.run(app, host=args.host, port=args.port)

        sys.exit(0)

    except KeyboardInterrupt:
        poller.stop()
        logger.info("Stopped by user")
        sys.exit(0)

    except Exception as e:
        logger.error(f"FivestaRSS failed: {e}", exc_info=True)
        print(f"\n❌ FivestaRSS failed: {e}")
        print("Check fivestarss.log for details")
        sys.exit(1)


if __name__ == "__main__":
    main()
