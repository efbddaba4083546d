"""Admin CLI: inspect, validate, query, or reset the log store."""

import argparse
import json
import logging
import sys
from itertools import islice

from log_ingest.config import load_config
from log_ingest.errors import LogIngestError
from log_ingest.query import LogFilter, QueryEngine
from log_ingest.storage import LogStore


def build_parser(default_path: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Administer the log store")
    parser.add_argument("--path", default=default_path, help="Path to the log store file")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--info", action="store_true", help="Show file size and record count")
    group.add_argument("--validate", action="store_true", help="Exit 1 if the store does not parse")
    group.add_argument("--count", action="store_true", help="Show total and per-level counts")
    group.add_argument("--query", action="store_true", help="Print matching records, most recent first")
    group.add_argument("--reset", action="store_true", help="Discard every record")

    filters = parser.add_argument_group("query filters")
    filters.add_argument("--level", help="Exact level (error, warn, info, debug)")
    filters.add_argument("--message", help="Case-insensitive substring of the message")
    filters.add_argument("--resource-id", dest="resourceId")
    filters.add_argument("--trace-id", dest="traceId")
    filters.add_argument("--span-id", dest="spanId")
    filters.add_argument("--commit")
    filters.add_argument("--since", dest="timestamp_start", help="Inclusive lower bound (ISO 8601)")
    filters.add_argument("--until", dest="timestamp_end", help="Inclusive upper bound (ISO 8601)")
    filters.add_argument("--limit", type=int, help="Print at most N records")
    return parser


def run(args) -> int:
    store = LogStore(args.path)
    engine = QueryEngine(store)

    if args.info:
        info = store.info()
        if not info.exists:
            print(f"No log store at {args.path}.")
            return 0
        print(f"  {args.path}  ({info.size_bytes} B, {info.log_count} records)")
    elif args.validate:
        if not store.validate():
            print(f"Invalid: {args.path} does not parse as a log store", file=sys.stderr)
            return 1
        print(f"OK: {args.path}")
    elif args.count:
        print(f"Total: {engine.count()}")
        for level, count in sorted(engine.count_by_level().items()):
            print(f"  {level:6s} {count}")
    elif args.query:
        results = engine.query(LogFilter.from_params(vars(args)))
        if args.limit:
            results = islice(results, args.limit)
        for record in results:
            print(json.dumps(record.to_dict()))
    elif args.reset:
        engine.reset()
        print(f"Reset {args.path}")
    return 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [log-admin] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    config = load_config()
    args = build_parser(config["storage"]["path"]).parse_args(argv)
    try:
        return run(args)
    except LogIngestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
