"""
Command-line access to DatabaseManager.

Usage:
  dbmanager [--target URL] [--principal USER] [--secret PASS] query "SELECT * FROM t WHERE id = ?" --param 1
  dbmanager update "DELETE FROM t WHERE id = ?" --param 1
  dbmanager scalar "SELECT count(*) FROM t"
  dbmanager script schema.sql
  dbmanager table-exists users
  dbmanager create-table users "id INT PRIMARY KEY, name VARCHAR(255)"

Results are printed as JSON. Connection options default to the DB_DEFAULT_*
settings.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dbmanager.core.errors import DatabaseManagerError
from dbmanager.core.resolver import default_config
from dbmanager.main import create_manager, init_sentry, setup_logging
from dbmanager.models import ConnectionConfig

_logger = logging.getLogger(__name__)


def _param(value: str) -> Any:
    """Interpret a --param as JSON when possible (1, 2.5, true, null), else as text."""
    try:
        return json.loads(value)
    except ValueError:
        return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbmanager",
        description="Run SQL against a pooled database connection.",
    )
    parser.add_argument("--target", help="Target URL, e.g. postgresql://host:5432/db")
    parser.add_argument("--principal", help="Database user")
    parser.add_argument("--secret", help="Database password")
    parser.add_argument("--max-pool-size", type=int, help="Maximum pooled connections")
    parser.add_argument("--timeout-ms", type=int, help="Connection timeout in milliseconds")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL setting)")

    sub = parser.add_subparsers(dest="command", required=True)
    for name in ("query", "update", "scalar"):
        p = sub.add_parser(name, help=f"Run a statement with {name}()")
        p.add_argument("sql")
        p.add_argument(
            "--param",
            action="append",
            default=[],
            type=_param,
            help="Positional parameter (repeatable)",
        )
    p = sub.add_parser("script", help="Run a ;-separated SQL script file ('-' for stdin)")
    p.add_argument("path")
    p = sub.add_parser("table-exists", help="Check whether a table exists")
    p.add_argument("name")
    p = sub.add_parser("create-table", help="CREATE TABLE IF NOT EXISTS")
    p.add_argument("name")
    p.add_argument("columns")
    return parser


def _config(args: argparse.Namespace) -> ConnectionConfig:
    overrides = {
        "target": args.target,
        "principal": args.principal,
        "secret": args.secret,
        "max_pool_size": args.max_pool_size,
        "connection_timeout_ms": args.timeout_ms,
    }
    base = default_config()
    return ConnectionConfig(
        **{**base.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
    )


def _read_script(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def run(args: argparse.Namespace) -> Any:
    config = _config(args)
    manager = create_manager()
    try:
        if args.command == "query":
            return manager.query(args.sql, args.param, config=config)
        if args.command == "update":
            return manager.update(args.sql, args.param, config=config)
        if args.command == "scalar":
            return manager.scalar(args.sql, args.param, config=config)
        if args.command == "script":
            return manager.script(_read_script(args.path), config=config)
        if args.command == "table-exists":
            return manager.table_exists(args.name, config=config)
        if args.command == "create-table":
            manager.create_table_if_not_exists(args.name, args.columns, config=config)
            return None
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        manager.close()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)
    init_sentry()
    try:
        result = run(args)
    except (DatabaseManagerError, ValueError, OSError) as e:
        _logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(result, default=str, indent=2))
    return 0
