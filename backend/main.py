"""
toonbridge - command line entry point.

Examples:
    python main.py encode data.json
    python main.py encode rows.json --mode array --delimiter "," --savings
    cat prompt.toon | python main.py decode --output-format array --indent 2
    python main.py validate prompt.toon
"""

import argparse
import sys

from codec.exceptions import ToonError
from codec.models import DecodeConfig, EncodeConfig, EncodeMode, OutputFormat
from codec.toon import encode_with_savings, load_json, toon_to_json, validate_toon
from config import DEFAULT_DELIMITER, DEFAULT_NESTED_SEPARATOR, DEFAULT_OUTPUT_FORMAT
from logger import get_logger, setup_logging

logger = get_logger(__name__)


def _read_input(path: str | None) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert between JSON and TOON")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p):
        p.add_argument("file", nargs="?", help="Input file path (default: stdin)")
        p.add_argument("--delimiter", default=DEFAULT_DELIMITER, help="Field delimiter")
        p.add_argument(
            "--nested-separator", default=DEFAULT_NESTED_SEPARATOR, help="Separator for nested key paths"
        )

    enc = sub.add_parser("encode", help="Convert JSON to TOON")
    add_common(enc)
    enc.add_argument("--mode", choices=[m.value for m in EncodeMode], default=EncodeMode.OBJECT.value)
    enc.add_argument("--no-schema", action="store_true", help="Omit the @schema header line")
    enc.add_argument("--savings", action="store_true", help="Print the token savings estimate to stderr")

    dec = sub.add_parser("decode", help="Convert TOON to JSON")
    add_common(dec)
    dec.add_argument(
        "--output-format", choices=[f.value for f in OutputFormat], default=DEFAULT_OUTPUT_FORMAT
    )
    dec.add_argument("--no-parse-numbers", action="store_true", help="Keep numeric fields as strings")
    dec.add_argument("--no-parse-booleans", action="store_true", help="Keep true/false as strings")
    dec.add_argument("--strict-nesting", action="store_true", help="Fail on conflicting nested keys")
    dec.add_argument("--indent", type=int, default=None, help="JSON indentation level")

    val = sub.add_parser("validate", help="Check TOON rows against the schema header")
    val.add_argument("file", nargs="?", help="Input file path (default: stdin)")
    val.add_argument("--delimiter", default=DEFAULT_DELIMITER, help="Field delimiter")

    return parser


def run(args: argparse.Namespace) -> str:
    """Execute a parsed command and return the text to print."""
    content = _read_input(args.file)

    if args.command == "encode":
        config = EncodeConfig(
            delimiter=args.delimiter,
            nested_separator=args.nested_separator,
            include_schema=not args.no_schema,
        )
        result = encode_with_savings(load_json(content), args.mode, config)
        if args.savings:
            print(result.token_savings_estimate, file=sys.stderr)
        return result.toon

    if args.command == "decode":
        config = DecodeConfig(
            delimiter=args.delimiter,
            nested_separator=args.nested_separator,
            output_format=args.output_format,
            parse_numbers=not args.no_parse_numbers,
            parse_booleans=not args.no_parse_booleans,
            strict_nesting=args.strict_nesting,
        )
        return toon_to_json(content, config, indent=args.indent)

    validate_toon(content, args.delimiter)
    return "Valid TOON format"


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        print(run(args))
    except FileNotFoundError:
        print(f"File not found: {args.file}", file=sys.stderr)
        return 1
    except (ToonError, ValueError) as e:
        logger.debug(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
