"""
Command line entry point.

    nbox CONFIG [CONFIG ...] [--output PATH] [--until YEAR] [-v]

Exit status is 0 on success, 1 on a model error and 2 on a configuration
error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from nbox import __version__
from nbox.config import ConfigError, load_core
from nbox.exceptions import NboxError
from nbox.output import write_outputstream

logger = logging.getLogger(__name__)

__all__ = ["build_parser", "main"]

EXIT_OK = 0
EXIT_MODEL_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the ``nbox`` command."""
    parser = argparse.ArgumentParser(
        prog="nbox",
        description="Run the biome-partitioned land and ocean carbon cycle model.",
    )
    parser.add_argument(
        "config",
        nargs="+",
        help=(
            "Configuration file: one INI file, or one or more TOML files "
            "layered in order"
        ),
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Write recorded pools and fluxes to this CSV file",
    )
    parser.add_argument(
        "--until",
        type=float,
        help="Stop at this year instead of the configured end date",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More logging (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the model from the command line and return the exit status."""
    args = build_parser().parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")
    logging.getLogger("nbox").setLevel(level)

    try:
        core = load_core(*args.config)
        core.run(until=args.until)
        if args.output:
            write_outputstream(core, args.output)
        core.shut_down()
    except ConfigError as err:
        print(f"{type(err).__name__}: {err}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except NboxError as err:
        print(f"{type(err).__name__}: {err}", file=sys.stderr)
        return EXIT_MODEL_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
