#!/usr/bin/env python3
"""
Script to run the Book Review API server.

Usage:
    python run_api.py [--host HOST] [--port PORT] [--reload]
"""

import argparse

import uvicorn

from api.config import config
from utilities.config import config as app_config


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Book Review API server")
    parser.add_argument("--host", default=config.host, help=f"Bind address (default: {config.host})")
    parser.add_argument("--port", type=int, default=config.port, help=f"Port (default: {config.port})")
    parser.add_argument("--reload", action="store_true", default=config.debug, help="Reload on code changes")
    return parser.parse_args(argv)


def main(argv=None):
    """Run the API server."""
    args = parse_args(argv)

    print("Starting Book Review API Server")
    print(f"Listening on: http://{args.host}:{args.port}")
    print(f"Database: {app_config.mongodb_database}")
    print(f"Log format: {app_config.log_format}")
    print("=" * 50)

    # Request lines are logged by the app middleware
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=app_config.log_level.lower(),
        access_log=False
    )


if __name__ == "__main__":
    main()
