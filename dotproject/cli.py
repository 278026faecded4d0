#!/usr/bin/env python3
"""dotproject CLI entrypoint."""

import sys
import argparse
import logging

from dotproject.lib.config import require_project
from dotproject.lib.errors import DotProjectError
from dotproject.commands import bulk as cmd_bulk_module
from dotproject.commands import canonicalize as cmd_canonicalize_module
from dotproject.commands import index as cmd_index_module
from dotproject.commands import validate as cmd_validate_module


def run_command(handler, args) -> int:
    """Locate the project, run a command handler and map errors to exit codes."""
    try:
        paths, config = require_project()
        return handler(args, paths, config)
    except DotProjectError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code


def cmd_bulk_import(args):
    return run_command(cmd_bulk_module.cmd_bulk_import, args)


def cmd_bulk_explain(args):
    return run_command(cmd_bulk_module.cmd_bulk_explain, args)


def cmd_canonicalize(args):
    return run_command(cmd_canonicalize_module.cmd_canonicalize, args)


def cmd_validate(args):
    return run_command(cmd_validate_module.cmd_validate, args)


def cmd_story_index(args):
    return run_command(cmd_index_module.cmd_story_index, args)


def cmd_docs_index(args):
    return run_command(cmd_index_module.cmd_docs_index, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='dotproject', description='Manage .project records')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log pipeline steps to stderr')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # dotproject bulk
    p_bulk = subparsers.add_parser('bulk', help='Bulk data commands')
    bulk_sub = p_bulk.add_subparsers(dest='bulk_cmd', required=True)

    # dotproject bulk import
    p_bulk_import = bulk_sub.add_parser('import', help='Import data from a file')
    p_bulk_import.add_argument('file', help='YAML or NDJSON file')
    p_bulk_import.add_argument('--format', default='yaml', help='File format: yaml or ndjson')
    p_bulk_import.add_argument('--upsert', action='store_true', help='Update existing entities instead of failing')
    p_bulk_import.add_argument('--dry-run', action='store_true', help='Show what would be done without writing')
    p_bulk_import.add_argument('--strict-keys', action='store_true', help='Fail on local keys that match no record')
    p_bulk_import.add_argument('--no-reindex', action='store_true', help='Skip rebuilding indexes after import')
    p_bulk_import.set_defaults(func=cmd_bulk_import)

    # dotproject bulk explain
    p_bulk_explain = bulk_sub.add_parser('explain', help='Explain what a bulk import would do')
    p_bulk_explain.add_argument('file', help='YAML or NDJSON file')
    p_bulk_explain.add_argument('--format', default='yaml', help='File format: yaml or ndjson')
    p_bulk_explain.set_defaults(func=cmd_bulk_explain)

    # dotproject canonicalize
    p_canon = subparsers.add_parser('canonicalize', help='Canonicalize JSON files')
    p_canon.set_defaults(func=cmd_canonicalize)

    # dotproject validate
    p_validate = subparsers.add_parser('validate', help='Validate JSON files against schemas')
    p_validate.set_defaults(func=cmd_validate)

    # dotproject story index
    p_story = subparsers.add_parser('story', help='Story commands')
    story_sub = p_story.add_subparsers(dest='story_cmd', required=True)
    p_story_index = story_sub.add_parser('index', help='Index stories and epics')
    p_story_index.set_defaults(func=cmd_story_index)

    # dotproject docs index
    p_docs = subparsers.add_parser('docs', help='Docs commands')
    docs_sub = p_docs.add_subparsers(dest='docs_cmd', required=True)
    p_docs_index = docs_sub.add_parser('index', help='Build docs index')
    p_docs_index.set_defaults(func=cmd_docs_index)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
