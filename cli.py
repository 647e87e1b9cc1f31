"""Command line entry point: ``lime serve``."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from collections.abc import Sequence

from config import DEFAULT_CONFIG_PATH, LOG_FORMAT, ConfigError, ServerConfig, load_config
from server import HTTPServer

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lime",
        description="Serve a static site from a pages directory and a static directory.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"path to the TOML config file (default: {DEFAULT_CONFIG_PATH})",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    serve = subcommands.add_parser("serve", help="start the HTTP server")
    serve.add_argument("--host", help="override the configured host")
    serve.add_argument("--port", type=int, help="override the configured port")
    serve.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    serve.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ServerConfig:
    """Load the config file named on the command line and apply overrides."""
    config = load_config(args.config)
    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config


def print_banner(config: ServerConfig, url: str, config_path: str) -> None:
    print(f"\n Lime Web Server v{__version__}")
    if config.is_default:
        print(f"  In order to configure Lime, create '{config_path}' in the current directory.")
    print(f"    Available on: {url}\n")


def serve(args: argparse.Namespace) -> int:
    try:
        config = resolve_config(args)
    except ConfigError as exc:
        print(f"lime: {exc}", file=sys.stderr)
        return 1
    if not config.is_default:
        logger.info("Loaded config from %s", args.config)

    server = HTTPServer(config, log_format=args.log_format)
    print_banner(config, server.url, args.config)
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
    except OSError as exc:
        print(f"lime: cannot listen on {server.url}: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        return serve(args)
    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
