#!/usr/bin/env python3
"""
Banking Engine Entry Point

Replays a batch document and prints (or writes) the ordered command results.
"""

import argparse
import json
import sys

from pydantic import ValidationError

from banking_engine.batch import load_document, run_document, write_results
from banking_engine.config import get_config
from banking_engine.logging_config import setup_logging


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Replay a batch of banking commands")
    parser.add_argument("input", help="Path to the input JSON document")
    parser.add_argument("output", nargs="?", help="Path of the results file (stdout if omitted)")
    args = parser.parse_args(argv)

    settings = get_config()
    logger = setup_logging(settings.log_level, log_format=settings.log_format,
                           log_file=settings.log_file)

    try:
        document = load_document(args.input)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Cannot load {args.input}: {e}")
        return 1

    results = run_document(document)

    if args.output:
        write_results(args.output, results)
    else:
        json.dump(results, sys.stdout, indent=2)
        sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
