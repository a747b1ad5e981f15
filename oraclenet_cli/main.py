"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m oraclenet_cli merkle root <leaves.json> [--json]
    python -m oraclenet_cli merkle tree <leaves.json> [--json]
    python -m oraclenet_cli merkle prove <leaves.json> --wallet 0x... --issue N [--out PATH]
    python -m oraclenet_cli merkle verify <proof.json> [--root 0x...] [--json]
    python -m oraclenet_cli config --init | --show

Environment Variables:
    ORACLENET_CLI_LOG_LEVEL     CLI log level (default: WARNING)
    ORACLENET_LOG_FILE          Also log to this file
    ORACLENET_*                 Service settings, see core.config.runtime
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from oraclenet_cli.commands import merkle
from oraclenet_cli.config import load_config, get_default_config_template


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="oraclenet",
        description="OracleNet CLI - Build membership trees and check proofs offline.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./oraclenet.json or ~/.config/oraclenet/config.json)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks on unexpected errors",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- merkle command ---
    merkle_parser = subparsers.add_parser(
        "merkle",
        help="Membership tree operations",
        description="Build membership trees, generate and verify inclusion proofs.",
    )
    merkle_sub = merkle_parser.add_subparsers(dest="merkle_command", help="Merkle operations")

    root_parser = merkle_sub.add_parser("root", help="Compute the root of a leaves file")
    root_parser.add_argument("leaves", type=str, help="Path to JSON leaves file")
    root_parser.add_argument("--json", action="store_true", default=False)
    root_parser.set_defaults(func=merkle.root_cmd)

    tree_parser = merkle_sub.add_parser("tree", help="Print every layer of the tree")
    tree_parser.add_argument("leaves", type=str, help="Path to JSON leaves file")
    tree_parser.add_argument("--json", action="store_true", default=False)
    tree_parser.set_defaults(func=merkle.tree_cmd)

    prove_parser = merkle_sub.add_parser("prove", help="Generate an inclusion proof")
    prove_parser.add_argument("leaves", type=str, help="Path to JSON leaves file")
    prove_parser.add_argument("--wallet", required=True, help="Wallet address of the leaf")
    prove_parser.add_argument("--issue", type=int, required=True, help="Issue number of the leaf")
    prove_parser.add_argument(
        "--out", "-o",
        type=str,
        default=None,
        help="Write the proof here instead of stdout",
    )
    prove_parser.set_defaults(func=merkle.prove_cmd)

    verify_parser = merkle_sub.add_parser(
        "verify",
        help="Verify a proof file offline",
        description="Recompute the root from (leaf, proof) and compare. Exit 2 if invalid.",
    )
    verify_parser.add_argument("proof", type=str, help="Path to proof JSON (as written by prove)")
    verify_parser.add_argument("--root", type=str, default=None, help="Check against this root instead")
    verify_parser.add_argument("--json", action="store_true", default=False)
    verify_parser.set_defaults(func=merkle.verify_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Initialize or show configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="oraclenet.json",
        help="Config file path (default: oraclenet.json)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (ORACLENET_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        config = args.cli_config
        config_dict = config.runtime.to_dict()
        config_dict["cli"] = {
            "log_level": config.log_level,
            "log_file": config.log_file,
            "output_format": config.default_output_format,
        }
        print(json.dumps(config_dict, indent=2))
        return EXIT_SUCCESS

    print("Usage: oraclenet config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=verification failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    if not hasattr(args, "func"):
        parser.parse_args([args.command, "--help"])
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_config(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    # Setup logging
    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=config.log_file)

    # Attach config to args for commands to use
    args.cli_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
