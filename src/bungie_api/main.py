"""CLI entry point for the bindings generator."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import get_settings
from .errors import GenerationError
from .generator import generate, load_document
from .logging import configure_logging
from .render import render_module

logger = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate typed platform API bindings")
    parser.add_argument(
        "--spec",
        default=os.getenv("BUNGIE_OPENAPI_PATH", "openapi.json"),
        help="Path to the OpenAPI v3 document",
    )
    parser.add_argument(
        "--output",
        default="-",
        help="Destination module path, or - for stdout",
    )
    parser.add_argument(
        "--log-level",
        default=get_settings().log_level,
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        bindings = generate(load_document(Path(args.spec)))
    except GenerationError as exc:
        logger.error("Generation failed: %s", exc)
        return 1

    source = render_module(bindings)
    if args.output == "-":
        sys.stdout.write(source)
    else:
        Path(args.output).write_text(source, encoding="utf-8")
        logger.info("Wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
