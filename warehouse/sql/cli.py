#!/usr/bin/env python3
"""
CLI entry point for templated SQL execution.

Usage:
    python -m warehouse.sql [--debug] query <sql-file> [options]
    python -m warehouse.sql [--debug] query --sql "SELECT ..." [options]
    python -m warehouse.sql resolve <sql-file> [--var-<name> <value> ...]

Template variables:
    Templates use @{name} placeholders. Provide values with
    --var-<name> <value> (or --var-<name>=<value>) and/or --vars <file.yaml>.
    Command-line values override the YAML file. If the template uses
    @{table} and no value is given, the connection's configured table is used.

    Values are inserted verbatim. Quote string literals yourself:
        --var-name "'O''Brien'"
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from warehouse.common.config import load_connection_config, load_variables

from .connection import open_connection
from .errors import WarehouseError
from .executor import ExecutionMode, ExecutionOptions, TemplateExecutor
from .output import format_preview, resolve_output_path, save_as_csv
from .template import apply_limit_to_query, find_placeholders, load_template_file, resolve_template

# Configure logger
logger = logging.getLogger(__name__)

VAR_PREFIX = '--var-'


def extract_variables(argv: List[str]) -> Tuple[Dict[str, str], List[str]]:
    """
    Pull --var-<name> <value> pairs out of argv.

    Returns:
        (variables, remaining_argv)
    """
    variables = {}
    remaining = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg.startswith(VAR_PREFIX) and len(arg) > len(VAR_PREFIX):
            name = arg[len(VAR_PREFIX):]
            if '=' in name:
                name, value = name.split('=', 1)
                i += 1
            elif i + 1 < len(argv):
                value = argv[i + 1]
                i += 2
            else:
                raise WarehouseError(f"Option '{arg}' requires a value")
            variables[name] = value
        else:
            remaining.append(arg)
            i += 1
    return variables, remaining


# =============================================================================
# Command Handlers
# =============================================================================

def _load_template(args) -> Tuple[str, Optional[Path]]:
    if args.sql is not None:
        logger.debug(f"Using inline SQL ({len(args.sql)} characters)")
        return args.sql, None
    if not args.sql_file:
        raise WarehouseError("Provide a SQL file or --sql \"...\"")
    sql_file = Path(args.sql_file).resolve()
    template = load_template_file(sql_file)
    logger.debug(f"Template loaded from {sql_file} ({len(template)} characters)")
    return template, sql_file


def _build_context(args) -> Dict[str, object]:
    context = {}
    if args.vars:
        context.update(load_variables(args.vars))
    context.update(args.variables)
    return context


def query(args) -> int:
    """Execute query subcommand."""
    template, sql_file = _load_template(args)
    context = _build_context(args)
    naming_context = dict(context)
    mode = ExecutionMode.SEND if args.send else ExecutionMode.FETCH
    options = ExecutionOptions(debug=args.debug, echo=args.echo, dry_run=args.dry_run)

    config = None
    if 'table' in find_placeholders(template) and 'table' not in context:
        config = load_connection_config(args.connection)
        if config.table:
            logger.debug(f"Using configured table: {config.table}")
            context['table'] = config.table

    if args.limit and mode is ExecutionMode.FETCH:
        logger.warning(f"LIMIT {args.limit} will be appended to the query")
        template = apply_limit_to_query(template, args.limit)

    if args.dry_run:
        result = TemplateExecutor().execute(template, context, mode, options)
        print(result.statement)
        return 0

    if config is None:
        config = load_connection_config(args.connection)

    with open_connection(config) as handle:
        logger.info(f"Connected to {config.driver} ({config.address})")
        result = TemplateExecutor(handle).execute(template, context, mode, options)

    if mode is ExecutionMode.SEND:
        affected = 'unknown' if result.rowcount is None else result.rowcount
        logger.info(f"Statement executed successfully - rows affected: {affected}")
        return 0

    logger.info(f"Query executed successfully - {len(result)} rows returned")
    output_path = resolve_output_path(sql_file, args.output, naming_context)
    save_as_csv(output_path, result)
    logger.info(f"Results saved to {output_path}")

    if len(result):
        print(f"\nPreview (first 5 rows):")
        print(format_preview(result))
        if len(result) > 5:
            logger.debug(f"... and {len(result) - 5} more rows (see {output_path.name})")
    return 0


def resolve(args) -> int:
    """Execute resolve subcommand: print the resolved statement."""
    template, _ = _load_template(args)
    print(resolve_template(template, _build_context(args)))
    return 0


# =============================================================================
# Parser Setup
# =============================================================================

def _add_template_arguments(parser):
    parser.add_argument('sql_file', nargs='?', help='SQL template file')
    parser.add_argument('--sql', help='Inline SQL template (no file needed)')
    parser.add_argument('--vars', help='YAML file with template variables')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='warehouse-sql',
        description='Run templated SQL against a data warehouse',
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug output, including the full statement')

    # Common parser for shared arguments (inherited by subcommands)
    common_parser = argparse.ArgumentParser(add_help=False)
    common_parser.add_argument('--debug', action='store_true', default=argparse.SUPPRESS,
                               help='Enable debug output, including the full statement')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    query_parser = subparsers.add_parser('query', parents=[common_parser], help='Execute a SQL template')
    _add_template_arguments(query_parser)
    query_parser.add_argument('--connection', default='default', help='Named connection from connections.toml')
    query_parser.add_argument('--send', action='store_true', help='Statement changes state or returns no rows')
    query_parser.add_argument('--dry-run', action='store_true', help='Print the resolved statement without executing it')
    query_parser.add_argument('--echo', action='store_true', help='Log the first line of the statement before executing')
    query_parser.add_argument('--limit', type=int, help='Append LIMIT N to the query')
    query_parser.add_argument('--output', help='Output CSV filename or directory')
    query_parser.set_defaults(func=query)

    resolve_parser = subparsers.add_parser('resolve', parents=[common_parser], help='Print a resolved SQL template')
    _add_template_arguments(resolve_parser)
    resolve_parser.set_defaults(func=resolve)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else argv

    try:
        variables, argv = extract_variables(argv)
    except WarehouseError as e:
        parser.error(str(e))

    args = parser.parse_args(argv)
    args.variables = variables

    if not args.command:
        parser.print_help()
        return 0

    # Configure logging based on debug flag
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(message)s'
    )
    logger.debug(f"Parsed options: {vars(args)}")

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.warning("\nInterrupted by user")
        return 130
    except WarehouseError as e:
        logger.error(f"Error: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
