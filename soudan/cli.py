import argparse
import logging
import sys

import uvicorn

from soudan.config import Settings, settings
from soudan.exceptions import ConfigurationError
from soudan.main import create_app
from soudan.middleware.logging import setup_structured_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Soudan comment server")
    parser.add_argument("domains", nargs="*", help="tenant origins, e.g. https://example.com")
    parser.add_argument("-t", "--testing", action="store_true", help="use in-memory databases")
    parser.add_argument("--host", help=f"bind address (default {settings.host})")
    parser.add_argument("--port", type=int, help=f"bind port (default {settings.port})")
    parser.add_argument("--data-dir", help="directory holding the per-tenant databases")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace, base: Settings = settings) -> Settings:
    """Command-line values override the environment."""
    overrides = {}
    if args.domains:
        overrides["domains"] = args.domains
    if args.testing:
        overrides["testing"] = True
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    return base.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> None:
    run_settings = build_settings(parse_args(argv))
    setup_structured_logging(run_settings.log_level, json_format=run_settings.json_logs)

    try:
        app = create_app(run_settings)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    uvicorn.run(app, host=run_settings.host, port=run_settings.port)
