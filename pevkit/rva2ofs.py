"""Convert a relative virtual address into a raw file offset."""

from __future__ import annotations

import getopt
import re
import sys

from .output import TOOLKIT
from .pe import PEFormatError, parse

PROGRAM = "rva2ofs"

_LLONG_MAX = 2**63 - 1
_ULLONG_MASK = 2**64 - 1

_NUMBER_RE = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


def parse_rva(text: str) -> int:
    """Read an RVA written in decimal, octal (leading 0) or hex (leading 0x).

    The number is read as a signed 64-bit value, saturating on overflow, and
    then taken as unsigned. Zero, or text that holds no number, is invalid.
    """
    match = _NUMBER_RE.match(text)
    value = 0
    if match is not None:
        sign, digits = match.groups()
        if digits[:2].lower() == "0x":
            value = int(digits, 16)
        elif digits.startswith("0"):
            value = int(digits, 8)
        else:
            value = int(digits)
        if sign == "-":
            value = max(-value, -_LLONG_MAX - 1)
        else:
            value = min(value, _LLONG_MAX)
    rva = value & _ULLONG_MASK
    if not rva:
        raise ValueError("invalid RVA")
    return rva


def _hex(value: int) -> str:
    return f"{value:#x}" if value else "0"


def _usage() -> str:
    return (
        f"Usage: {PROGRAM} <rva> FILE\n"
        "Convert RVA to raw file offset\n"
        f"\nExample: {PROGRAM} 0x12db cards.dll\n"
        "\nOptions:\n"
        " -V, --version                    Show version.\n"
        " --help                           Show this help.\n"
    )


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 2:
        sys.stdout.write(_usage())
        return 1

    try:
        opts, _ = getopt.gnu_getopt(args, "V", ["help", "version"])
    except getopt.GetoptError:
        sys.stderr.write(f"{PROGRAM}: try '--help' for more information\n")
        return 1

    for opt, _value in opts:
        if opt == "--help":
            sys.stdout.write(_usage())
            return 0
        if opt in ("-V", "--version"):
            sys.stdout.write(f"{PROGRAM} {TOOLKIT}\n")
            return 0

    rva_text, path = args
    try:
        with open(path, "rb") as fh:
            data = fh.read()
    except OSError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    try:
        rva = parse_rva(rva_text)
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    try:
        pe = parse(data)
    except PEFormatError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    sys.stdout.write(f"{_hex(pe.rva_to_offset(rva))}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())