#!/usr/bin/env python3
"""
deadswitch Command Line Interface

Usage:
    deadswitch serve [--host HOST] [--port PORT]
    deadswitch gen-seed [--output FILE] [--key-name NAME]
    deadswitch status --owner PRINCIPAL
    deadswitch inheritances --beneficiary PRINCIPAL
    deadswitch check-config
"""

import argparse
import json
import sys

from . import config
from .errors import DeadSwitchError
from .identity import Principal
from .logging_config import configure_logging


def cmd_serve(args):
    """Run the HTTP API."""
    import uvicorn

    level = "DEBUG" if config.is_debug() else config.LOG_LEVEL
    configure_logging(level, json_format=config.LOG_JSON)
    uvicorn.run("deadswitch.api.main:app", host=args.host, port=args.port, log_config=None)
    return 0


def cmd_gen_seed(args):
    """Generate a development master seed for local key derivation."""
    from .keys import write_master_seed

    write_master_seed(args.output, args.key_name)
    print(f"Master seed written to: {args.output}")
    return 0


def cmd_status(args):
    """Show an owner's will status as the owner would see it."""
    from .service import build_service

    service = build_service()
    try:
        status = service.get_will_status(Principal.from_text(args.owner))
    except DeadSwitchError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    print(json.dumps(status, indent=2))
    return 0


def cmd_inheritances(args):
    """List wills naming a beneficiary, with computed liveness."""
    from .service import build_service

    service = build_service()
    items = service.list_my_inheritances(Principal.from_text(args.beneficiary))
    print(json.dumps(items, indent=2))
    return 0


def cmd_check_config(args):
    """Validate configuration."""
    checks = config.validate_config()
    for name, ok in checks.items():
        print(f"{'✓' if ok else '✗'} {name}")
    return 0 if all(checks.values()) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deadswitch",
        description="Liveness-gated inheritance service"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    seed_parser = subparsers.add_parser("gen-seed", help="Generate a development master seed")
    seed_parser.add_argument("--output", "-o", default=config.MASTER_SEED_PATH)
    seed_parser.add_argument("--key-name", default=config.KEY_NAME)

    status_parser = subparsers.add_parser("status", help="Show will status for an owner")
    status_parser.add_argument("--owner", required=True)

    inh_parser = subparsers.add_parser("inheritances", help="List inheritances for a beneficiary")
    inh_parser.add_argument("--beneficiary", required=True)

    subparsers.add_parser("check-config", help="Validate configuration")
    return parser


COMMANDS = {
    "serve": cmd_serve,
    "gen-seed": cmd_gen_seed,
    "status": cmd_status,
    "inheritances": cmd_inheritances,
    "check-config": cmd_check_config,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
