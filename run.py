#!/usr/bin/env python3
"""
Entry point script for running the security event notifier.
"""

import os

# Load .env before any other imports so Config sees it
from dotenv import load_dotenv
load_dotenv()

import argparse
import logging


def main():
    parser = argparse.ArgumentParser(description='Security Event Notifier')

    parser.add_argument(
        '--host',
        default=os.environ.get('NOTIFIER_HOST', '0.0.0.0'),
        help='Host to bind to (default: 0.0.0.0)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=int(os.environ.get('NOTIFIER_PORT', 8787)),
        help='Port to bind to (default: 8787)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        default=os.environ.get('NOTIFIER_DEBUG', 'false').lower() == 'true',
        help='Enable debug mode'
    )
    parser.add_argument(
        '--interval',
        type=int,
        default=int(os.environ.get('POLL_INTERVAL_SECONDS', 300)),
        help='Seconds between security event polls (default: 300)'
    )
    parser.add_argument(
        '--no-scheduler',
        action='store_true',
        help='Serve the API without polling for events'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=os.environ.get('LOG_LEVEL', 'INFO'),
        help='Logging level (default: INFO)'
    )

    args = parser.parse_args()

    # Import and create app
    from config import Config
    from app import create_app

    class RunConfig(Config):
        POLL_INTERVAL_SECONDS = args.interval
        SCHEDULER_ENABLED = not args.no_scheduler
        LOG_LEVEL = args.log_level

    app = create_app(RunConfig)
    logger = logging.getLogger(__name__)

    logger.info("Starting Security Event Notifier")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Poll interval: {args.interval}s")
    logger.info(f"  Scheduler: {'disabled' if args.no_scheduler else 'enabled'}")
    logger.info(f"  Debug: {args.debug}")

    # Reloader would start a second scheduler thread
    app.run(
        host=args.host,
        port=args.port,
        debug=args.debug,
        use_reloader=False,
        threaded=True
    )


if __name__ == '__main__':
    main()
