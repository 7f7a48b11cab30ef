"""Command line entry point: filter a table and print the matching rows."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from dtable_query._log import setup_logging
from dtable_query.config import StoreConfig
from dtable_query.errors import QueryError
from dtable_query.queryset import new_queryset
from dtable_query.remote import RemoteRowStore
from dtable_query.store import InMemoryRowStore, RowStore


def _load_json_list(path: Path) -> list[Any]:
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list")
    return data


def _make_store(args: argparse.Namespace) -> RowStore:
    if args.rows is not None:
        columns = _load_json_list(args.columns)
        rows = _load_json_list(args.rows)
        return InMemoryRowStore({args.table: {"columns": columns, "rows": rows}})
    return RemoteRowStore(StoreConfig.from_env())


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Filter the rows of a table with a condition like 'age>=18 and name like \"%ann%\"'"
    )
    arg_parser.add_argument("table", help="Name of the table to query")
    arg_parser.add_argument(
        "conditions",
        nargs="?",
        default="",
        help="Filter condition (all rows when omitted)",
    )
    arg_parser.add_argument("--view", default=None, help="Restrict the rows to a view")
    arg_parser.add_argument(
        "--rows",
        type=Path,
        help="Read rows from a JSON file instead of the server (requires --columns)",
    )
    arg_parser.add_argument(
        "--columns",
        type=Path,
        help="Read the column schema from a JSON file",
    )
    selection = arg_parser.add_mutually_exclusive_group()
    selection.add_argument("--count", action="store_true", help="Print the number of matching rows")
    selection.add_argument("--first", action="store_true", help="Print only the first matching row")
    selection.add_argument("--last", action="store_true", help="Print only the last matching row")
    arg_parser.add_argument("--loglevel", default="warning", help="Logging level (default: warning)")

    args = arg_parser.parse_args(argv)
    setup_logging(args.loglevel)

    if (args.rows is None) != (args.columns is None):
        print("Error: --rows and --columns must be given together", file=sys.stderr)
        return 1

    try:
        store = _make_store(args)
        queryset = new_queryset(store, args.table, args.view).filter(args.conditions)
    except (OSError, ValueError, QueryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.count:
        print(queryset.count())
    elif args.first:
        print(json.dumps(queryset.first(), indent=2, ensure_ascii=False))
    elif args.last:
        print(json.dumps(queryset.last(), indent=2, ensure_ascii=False))
    else:
        print(json.dumps(list(queryset), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
