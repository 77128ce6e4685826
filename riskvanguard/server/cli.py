"""
Command-line interface for the RiskVanguard server.

Settings come from ``RISKVANGUARD_*`` environment variables first; any
flag given on the command line wins over the environment.
"""

import argparse
import json
import sys
from dataclasses import asdict, replace
from typing import Optional

from .. import __version__
from ..config import PolicyConfig
from .config import ServerConfig

POLICY_FLAGS = {
    "critical_below": "Overall score below which risk is critical",
    "high_below": "Overall score below which risk is high",
    "medium_below": "Overall score below which risk is medium",
    "lane_pass_score": "Lane score needed to pass",
    "lane_warning_score": "Lane score below which a lane fails",
    "minimum_royalty_rate": "Minimum acceptable energy royalty rate (%%)",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="riskvanguard-server",
        description="RiskVanguard Server - document risk analysis over HTTP",
    )
    parser.add_argument("--host", default=None, help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to (default: 8000)")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: $DATABASE_URL or sqlite:///./riskvanguard.db)",
    )
    parser.add_argument(
        "--api-keys",
        default=None,
        help="Comma-separated list of API keys (default: dev-analyst-key,dev-reviewer-key)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    policy = parser.add_argument_group("risk policy")
    for name, help_text in POLICY_FLAGS.items():
        policy.add_argument(
            f"--{name.replace('_', '-')}", dest=name, type=float, default=None, help=help_text
        )

    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Print the resolved configuration as JSON and exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ServerConfig:
    """Layer command-line flags over the environment configuration."""
    config = ServerConfig.from_env()

    overrides = {
        name: getattr(args, name) for name in POLICY_FLAGS if getattr(args, name) is not None
    }
    policy: PolicyConfig = replace(config.policy, **overrides)

    updates = {"policy": policy}
    if args.host is not None:
        updates["host"] = args.host
    if args.port is not None:
        updates["port"] = args.port
    if args.database_url is not None:
        updates["database_url"] = args.database_url
    if args.debug:
        updates["debug"] = True
    if args.log_level is not None:
        updates["log_level"] = args.log_level
    config = replace(config, **updates)
    if args.api_keys:
        config.api_keys = {k.strip() for k in args.api_keys.split(",") if k.strip()}
    return config


def main(argv: Optional[list[str]] = None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args)
    except ValueError as e:
        parser.error(str(e))

    if args.print_config:
        data = asdict(config)
        data["api_keys"] = sorted(config.api_keys)
        print(json.dumps(data, indent=2))
        return

    from .app import RiskVanguardServer

    policy = config.policy
    print(f"""
RiskVanguard Server v{__version__}
  Verticals: energy, government, insurance
  Listening: http://{config.host}:{config.port}
  Database:  {config.database_url}
  Risk bands: critical < {policy.critical_below:g} <= high < {policy.high_below:g} <= medium < {policy.medium_below:g} <= low

📖 API Documentation: http://{config.host}:{config.port}/docs
🔍 Service Discovery: http://{config.host}:{config.port}/.well-known/riskvanguard.json

Press Ctrl+C to stop the server.
""")  # noqa: E501

    try:
        server = RiskVanguardServer(
            host=config.host,
            port=config.port,
            database_url=config.database_url,
            api_keys=config.api_keys,
            cors_origins=config.cors_origins,
            debug=config.debug,
            log_level=config.log_level,
            policy=policy,
        )
        server.run()
    except KeyboardInterrupt:
        print("\nServer stopped.")
        sys.exit(0)


if __name__ == "__main__":
    main()
