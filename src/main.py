from __future__ import annotations

from pathlib import Path
from pprint import pformat
import sys
from typing import List, Optional

# Frontend
from parser import ParseError, build_parser, parse_source
from ast_lilc import ProgramNode

# Backend
from typewriter import UnparseError, unparse_to_string


USAGE: str = "Usage: lilc <source_file> [-o|--out <output_file>] [--tree]"


# ---------------------------------------
# Utilities
# ---------------------------------------

def log(*args) -> None:
    print(*args, file=sys.stderr)


def load_source(path: str) -> Optional[str]:
    p = Path(path)
    if not p.exists():
        log(f"Error: file '{path}' not found.")
        return None
    return p.read_text(encoding="utf-8")


def parse_args(argv: List[str]) -> Optional[dict]:
    options = {"source": None, "out": None, "tree": False}
    args = iter(argv)

    for arg in args:
        if arg in ("-?", "-h", "--help"):
            return None
        elif arg in ("-o", "--out"):
            options["out"] = next(args, None)
            if options["out"] is None:
                log("Error: -o needs an output file name")
                return None
        elif arg == "--tree":
            options["tree"] = True
        elif options["source"] is None:
            options["source"] = arg
        else:
            log(f"Error: unexpected argument '{arg}'")
            return None

    if options["source"] is None:
        log("Error: No file name provided")
        return None
    return options


# ---------------------------------------
# Pipeline
# ---------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    options = parse_args(sys.argv[1:] if argv is None else argv)
    if options is None:
        log(USAGE)
        return 1

    # 1. Load source
    src = load_source(options["source"])
    if src is None:
        return 1

    # 2. Parser + CST → AST
    try:
        program: ProgramNode = parse_source(src, build_parser())
    except ParseError as e:
        log("Syntax error:", e)
        return 1

    if options["tree"]:
        log("=== AST ===")
        log(pformat(program))

    # 3. AST → source (Typewriter)
    try:
        text = unparse_to_string(program)
    except UnparseError as e:
        log("Error:", e)
        return 1

    if options["out"] is None:
        sys.stdout.write(text)
    else:
        Path(options["out"]).write_text(text, encoding="utf-8")
        log(f"[Saved {options['out']}]")

    return 0


if __name__ == "__main__":
    sys.exit(main())
