"""Main CLI entry point for the soap-multiref command-line tool.

Provides the ``flatten`` command, which writes a multiRef-free copy of a
SOAP document, and the ``fault`` command, which reports the SOAP Fault a
response carries.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from soap_multiref import __version__
from soap_multiref.api import flatten_with_report
from soap_multiref.shared import (
    ConfigError,
    DecodeError,
    FlattenError,
    MalformedXMLError,
    SoapConfig,
    get_logger,
)
from soap_multiref.soap import find_fault

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FAULT = 2


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="soap-multiref",
        description="Flatten SOAP 1.1 multiRef href/id references"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Flatten command
    flatten_parser = subparsers.add_parser(
        "flatten", help="Substitute href references with their content"
    )
    flatten_parser.add_argument(
        "input",
        help="XML file to flatten, or - for stdin"
    )
    flatten_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    flatten_parser.add_argument(
        "--report",
        action="store_true",
        help="Print diagnostics and metrics as JSON to stderr"
    )
    flatten_parser.add_argument(
        "--no-cycle-check",
        action="store_true",
        help="Disable reference cycle detection (depth limit still applies)"
    )
    flatten_parser.add_argument(
        "--max-depth",
        type=int,
        help="Maximum length of a chain of nested href expansions"
    )
    flatten_parser.add_argument(
        "--keep-multiref",
        action="store_true",
        help="Keep multiRef elements in the output"
    )
    flatten_parser.add_argument(
        "--preserve-text",
        action="store_true",
        help="Keep text interleaved with child elements"
    )
    flatten_parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON configuration file"
    )

    # Fault command
    fault_parser = subparsers.add_parser(
        "fault", help="Print the SOAP Fault carried by a response"
    )
    fault_parser.add_argument(
        "input",
        help="SOAP response file, or - for stdin"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser


def read_input(source: str) -> bytes:
    """Read raw bytes from a path, or from stdin for ``-``."""
    if source == "-":
        return sys.stdin.buffer.read()
    return Path(source).read_bytes()


def load_config(args: argparse.Namespace) -> SoapConfig:
    """Build the flatten configuration from ``--config`` and flags."""
    config = SoapConfig()
    if args.config is not None:
        config = SoapConfig.from_json(args.config.read_text(encoding="utf-8"))

    overrides = {}
    if args.no_cycle_check:
        overrides["flatten__detect_cycles"] = False
    if args.max_depth is not None:
        overrides["flatten__max_depth"] = args.max_depth
    if args.keep_multiref:
        overrides["flatten__suppress_multiref"] = False
    if args.preserve_text:
        overrides["flatten__preserve_text"] = True
    return config.override(**overrides) if overrides else config


def cmd_flatten(args: argparse.Namespace) -> int:
    """Handle the flatten command."""
    logger = get_logger(__name__, None, "cli")
    try:
        config = load_config(args)
        data = read_input(args.input)
        result = flatten_with_report(data, config)
    except (ConfigError, OSError, MalformedXMLError, FlattenError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.output:
        args.output.write_bytes(result.output)
        logger.info("Flattened document written", extra={"output": str(args.output)})
    else:
        sys.stdout.buffer.write(result.output)
        sys.stdout.buffer.flush()

    if args.report:
        print(json.dumps(result.summary(), indent=2), file=sys.stderr)

    return EXIT_OK


def cmd_fault(args: argparse.Namespace) -> int:
    """Handle the fault command."""
    try:
        fault = find_fault(read_input(args.input))
    except (OSError, MalformedXMLError, DecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if fault is None:
        print("No SOAP Fault")
        return EXIT_OK

    print(json.dumps(fault.to_dict(), indent=2))
    return EXIT_FAULT


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    if args.verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)

    try:
        if args.command == "flatten":
            return cmd_flatten(args)
        if args.command == "fault":
            return cmd_fault(args)
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return EXIT_ERROR

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
