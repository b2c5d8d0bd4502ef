"""awaitlite CLI"""

import argparse
import asyncio
import dataclasses
import json
import sqlite3
import sys
from typing import Any

from common.logging import LEVELS, setup_logging
from database import (
    Database,
    DatabaseError,
    DatabaseRegistry,
    load_config,
    OPEN_CREATE,
    OPEN_READONLY,
    OPEN_READWRITE,
)
from database.config import DEFAULT_CONFIG_PATH


async def open_database(args: argparse.Namespace) -> Database:
    """--file 또는 --db 인자로 데이터베이스 연결"""
    if args.file:
        mode = OPEN_READONLY if args.readonly else OPEN_READWRITE | OPEN_CREATE
        return await Database.connect(args.file, mode=mode)

    config = load_config(args.config)
    await DatabaseRegistry.init_from_config(config, [args.db])
    return DatabaseRegistry.get(args.db)


async def execute(args: argparse.Namespace) -> Any:
    """명령 실행 후 결과 반환"""
    db = await open_database(args)
    try:
        if args.command == "run":
            return dataclasses.asdict(await db.run(args.sql, *args.params))
        if args.command == "get":
            return await db.get(args.sql, *args.params)
        if args.command == "all":
            return await db.all(args.sql, *args.params)
        await db.exec(args.sql)
        return None
    finally:
        if args.file:
            await db.close()
        else:
            await DatabaseRegistry.close_all()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="awaitlite",
        description="awaitlite - 비동기 SQLite 어댑터 CLI"
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--file", help="SQLite database file path")
    target.add_argument("--db", default="default", help="Database name in config (default: default)")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Database config YAML path")
    parser.add_argument("--readonly", action="store_true", help="Open --file read-only")
    parser.add_argument("--log-level", default="WARNING", type=str.upper, choices=LEVELS,
                        help="Log level (default: WARNING)")
    parser.add_argument("--json-log", action="store_true", help="Use JSON log format")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--verbose", action="store_true", help="Log every SQL statement (Database.verbose)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    for name, help_text in (
        ("run", "Execute one statement, print last_id/changes"),
        ("get", "Print the first result row"),
        ("all", "Print all result rows"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("sql", help="SQL statement")
        sub.add_argument("params", nargs="*", help="Positional parameters")

    exec_parser = subparsers.add_parser("exec", help="Execute a multi-statement script")
    exec_parser.add_argument("sql", help="SQL script ('-' reads stdin)")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "exec":
        args.params = []
        if args.sql == "-":
            args.sql = sys.stdin.read()

    setup_logging(
        level=args.log_level,
        json_format=args.json_log,
        log_file=args.log_file,
        verbose=args.verbose
    )

    try:
        result = asyncio.run(execute(args))
    except (sqlite3.Error, DatabaseError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result is not None:
        print(json.dumps(result, ensure_ascii=False, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
