"""
erexplore CLI - exploratory analysis of expression data against clinical covariates.

Commands:
    erexplore run   - Align, transform, cluster, embed and test one dataset
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for erexplore."""
    parser = argparse.ArgumentParser(
        prog="erexplore",
        description="Exploratory clustering of expression data against clinical covariates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run           Align, transform, cluster, embed and test one dataset

Examples:
  erexplore run --expression expr.tsv --clinical-a patient.tsv --clinical-b sample.tsv --output results/
  erexplore run --config analysis.yaml --output results/ --seed 42 --figures
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Import and register subcommands
    from erexplore.cli import run
    run.register_parser(subparsers)

    raw_args = list(args) if args is not None else sys.argv[1:]
    parsed_args = parser.parse_args(raw_args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    # Kept so config merging can tell explicit flags from defaults
    parsed_args.raw_args = raw_args[1:]

    # Dispatch to subcommand
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
