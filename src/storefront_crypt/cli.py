"""
storefront-crypt command line tool.

Operator utilities for the order field encryption subsystem: generating a
secret, encrypting an order record, decoding stored records, and checking
how a single stored value will be read.
"""

import argparse
import json
import sys
from typing import Any, TextIO

from .config import StorefrontCryptConfig
from .encryption import EnvelopeCodec, KeyProvider, generate_secret
from .exceptions import ConfigurationError, EncryptionFailed
from .logging_config import setup_logging
from .orders import FieldKind, OrderFieldAdapter, classify

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_INPUT_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="storefront-crypt",
        description="Encrypt and decode sensitive order fields",
    )

    parser.add_argument(
        "--config",
        help="Path to a YAML configuration file"
    )

    parser.add_argument(
        "--secrets",
        help="Path to a YAML secrets file (ignored if missing)"
    )

    parser.add_argument(
        "--log-level",
        help="Override the configured log level (DEBUG, INFO, WARNING, ERROR)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate-key", help="Print a new hex encryption secret")
    generate.add_argument(
        "--bytes",
        type=int,
        default=64,
        help="Number of random bytes in the secret (default: 64)"
    )

    encrypt = subparsers.add_parser("encrypt-order", help="Encrypt the sensitive fields of an order record")
    encrypt.add_argument("file", nargs="?", default="-", help="JSON file with the record (default: stdin)")

    decode = subparsers.add_parser("decode-order", help="Decode one stored order record or a list of them")
    decode.add_argument("file", nargs="?", default="-", help="JSON file with the record(s) (default: stdin)")

    inspect = subparsers.add_parser("inspect-field", help="Show how a stored field value will be read")
    inspect.add_argument("value", help="The stored column value")

    return parser.parse_args(argv)


def _read_json(path: str, stdin: TextIO) -> Any:
    if path == "-":
        return json.load(stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _dump(value: Any, out: TextIO) -> None:
    out.write(json.dumps(value, indent=2, ensure_ascii=False))
    out.write("\n")


def run_generate_key(args: argparse.Namespace, out: TextIO) -> int:
    try:
        secret = generate_secret(args.bytes)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    out.write(secret + "\n")
    return EXIT_OK


def run_encrypt_order(adapter: OrderFieldAdapter, record: Any, out: TextIO) -> int:
    if not isinstance(record, dict):
        print("Error: order record must be a JSON object", file=sys.stderr)
        return EXIT_INPUT_ERROR

    try:
        _dump(adapter.encode_order(record), out)
    except EncryptionFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    return EXIT_OK


def run_decode_order(adapter: OrderFieldAdapter, records: Any, out: TextIO) -> int:
    if isinstance(records, dict):
        _dump(adapter.decode_order(records), out)
    elif isinstance(records, list) and all(isinstance(r, dict) for r in records):
        _dump(adapter.decode_orders(records), out)
    else:
        print("Error: expected a JSON object or a list of objects", file=sys.stderr)
        return EXIT_INPUT_ERROR
    return EXIT_OK


def run_inspect_field(adapter: OrderFieldAdapter, value: str, out: TextIO) -> int:
    stored = classify(value)
    out.write(f"kind: {stored.kind.value}\n")

    if stored.kind is FieldKind.ENVELOPE:
        result = adapter.codec.try_decrypt(stored.parsed)
        out.write(f"decrypts: {'yes' if result.ok else 'no'}\n")
        if result.ok:
            out.write(f"decrypted type: {type(result.value).__name__}\n")
    elif stored.kind is FieldKind.LEGACY_PLAIN:
        out.write(f"parsed type: {type(stored.parsed).__name__}\n")
    return EXIT_OK


def main(argv: list[str] | None = None, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    """Main entry point for the storefront-crypt tool."""
    args = parse_args(argv)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    try:
        StorefrontCryptConfig.initialize(args.config)
        if args.secrets:
            StorefrontCryptConfig.load_from_secrets_file(args.secrets)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(args.log_level)

    if args.command == "generate-key":
        return run_generate_key(args, stdout)

    try:
        adapter = OrderFieldAdapter(EnvelopeCodec(KeyProvider()))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.command == "inspect-field":
        return run_inspect_field(adapter, args.value, stdout)

    try:
        data = _read_json(args.file, stdin)
    except (OSError, ValueError) as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if args.command == "encrypt-order":
        return run_encrypt_order(adapter, data, stdout)
    return run_decode_order(adapter, data, stdout)


if __name__ == "__main__":
    sys.exit(main())
