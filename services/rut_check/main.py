"""
Main CLI module for the RUT check service.

Provides command-line access to RUT validation, formatting and bulk
normalization of imported files.
Example: python -m services.rut_check validate 12.345.678-5
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .batch import LoadError, load_records, normalize_records, write_records
from .helpers.rut import format_rut, validate_rut
from .log_config import configure_logging, get_logger
from .settings import settings


logger = get_logger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_LOAD_ERROR = 2


def run_validate(ruts: List[str]) -> int:
    """
    Validate each RUT and print one line per input.

    Returns:
        EXIT_OK if every RUT is valid, EXIT_INVALID otherwise
    """
    all_valid = True

    for raw in ruts:
        result = validate_rut(raw)
        if result.valid:
            print(f"{result.formatted}\tOK")
        else:
            all_valid = False
            print(f"{result.formatted}\tINVALID\t{result.error}")

    logger.info("RUT validation finished", total=len(ruts), all_valid=all_valid)
    return EXIT_OK if all_valid else EXIT_INVALID


def run_format(ruts: List[str], dotted: bool = False) -> int:
    """Print the display form of each RUT."""
    for raw in ruts:
        print(format_rut(raw, dotted=dotted))
    return EXIT_OK


def run_batch(input_path: str, column: Optional[str] = None, output_path: Optional[str] = None) -> int:
    """
    Normalize the RUT column of a CSV/Excel file.

    Args:
        input_path: File to read
        column: RUT column name (falls back to settings, then auto-detection)
        output_path: Where to write the annotated rows, if given

    Returns:
        EXIT_OK if every row is valid and unique, EXIT_INVALID if not,
        EXIT_LOAD_ERROR if the file could not be read or written
    """
    config = settings()

    try:
        records = load_records(input_path, encoding=config.csv_encoding)
        result = normalize_records(
            records,
            column=column or config.rut_column,
            flag_duplicates=config.flag_duplicates,
        )
        if output_path:
            write_records(result.to_records(), output_path)
    except (LoadError, FileNotFoundError) as e:
        logger.error(
            "Batch normalization failed",
            input_path=input_path,
            error=str(e),
            error_type=type(e).__name__
        )
        return EXIT_LOAD_ERROR

    print(f"rows: {len(result.outcomes)}")
    print(f"valid: {result.valid_count}")
    print(f"invalid: {result.invalid_count}")
    print(f"duplicates: {result.duplicate_count}")
    for kind, count in sorted(result.errors_by_kind().items()):
        print(f"  {kind}: {count}")

    return EXIT_OK if result.ok else EXIT_INVALID


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="rut-check",
        description="Chilean RUT validation and normalization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m services.rut_check validate 12.345.678-5 7.654.321-6
  python -m services.rut_check format "  12.345.678-5 "
  python -m services.rut_check batch clientes.csv --column rut --output clientes_ok.csv
        """
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration"
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Override log format from configuration"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"RUT check {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Validate one or more RUTs")
    validate_parser.add_argument("ruts", nargs="+", metavar="RUT")

    format_parser = subparsers.add_parser("format", help="Format RUTs as <body>-<DV>")
    format_parser.add_argument("ruts", nargs="+", metavar="RUT")
    format_parser.add_argument(
        "--dotted",
        action="store_true",
        help="Group the body in thousands (12.345.678-5)"
    )

    batch_parser = subparsers.add_parser("batch", help="Normalize the RUT column of a CSV/Excel file")
    batch_parser.add_argument("input", help="Input .csv or .xlsx file")
    batch_parser.add_argument("--column", help="RUT column name (auto-detected by default)")
    batch_parser.add_argument("--output", help="Write annotated rows to this .csv or .xlsx file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, 1 for invalid input, 2 for file errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging with CLI overrides
    if args.log_level or args.log_format:
        configure_logging(args.log_level, args.log_format)

    config = settings()
    logger.debug(
        "Service starting",
        service_name=config.service_name,
        version=__version__,
        environment=config.environment,
        command=args.command
    )

    try:
        if args.command == "validate":
            return run_validate(args.ruts)
        if args.command == "format":
            return run_format(args.ruts, dotted=args.dotted)
        return run_batch(args.input, column=args.column, output_path=args.output)
    except KeyboardInterrupt:
        logger.warning("Service interrupted by user")
        return EXIT_INVALID


def cli_main():
    """Entry point for setuptools console scripts."""
    return main()


if __name__ == "__main__":
    sys.exit(main())
