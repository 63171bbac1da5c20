#!/usr/bin/env python3
"""Parse a screenplay file and print its elements, locations or characters."""

import argparse
import json
import logging
import sys

from core.exceptions import SluglineException
from services.character_index import build_character_index
from services.document_loader import load_document
from services.location_index import location_breakdown

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Dump a Fountain or FDX screenplay")
    parser.add_argument("path", help="Path to a .fountain, .spmd, .txt or .fdx file")
    parser.add_argument(
        "--view",
        choices=["elements", "locations", "characters"],
        default="elements",
        help="What to print (default: elements)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print JSON instead of one line per element",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Load the file and print the requested view; returns the exit code."""
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        document = load_document(args.path)
    except SluglineException as exc:
        logger.error("%s: %s", exc.__class__.__name__, exc.message)
        return 1

    if args.view == "locations":
        print(json.dumps(location_breakdown(document), indent=2))
    elif args.view == "characters":
        characters = build_character_index(document)
        print(json.dumps([c.model_dump() for c in characters], indent=2))
    elif args.json:
        print(document.model_dump_json(indent=2))
    else:
        for entry in document.title_page:
            print(f"{entry.key}: {' / '.join(entry.values)}")
        if document.title_page:
            print()
        for element in document.elements:
            print(element)

    return 0


if __name__ == "__main__":
    sys.exit(main())
