#!/usr/bin/env python
"""
Command-line interface for FieldWatch.

This module provides the main entry point for the FieldWatch CLI, with
commands for running anomaly detection, reviewing flags, and initializing
the database.
"""

import sys
import logging
import argparse

from fieldwatch.config import get_section
from fieldwatch.db.init import initialize
from fieldwatch.db.operations import SqlAlchemyEvidenceStore, get_anomaly_flags, resolve_anomaly_flag
from fieldwatch.db.session import session_scope
from fieldwatch.detection.base import DetectionConfig
from fieldwatch.detection.engine import AnomalyDetectionEngine, default_window_start
from fieldwatch.detection.models import FlagType
from fieldwatch.exceptions import FieldWatchError
from fieldwatch.utils.common import parse_date, safe_json_dumps
from fieldwatch.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def setup_detect_commands(subparsers):
    """Set up the detection command.

    Args:
        subparsers: argparse subparsers object
    """
    detect_parser = subparsers.add_parser('detect', help='Run anomaly detection')
    detect_parser.add_argument('--window-start',
                               help='First day of the analysis window (YYYY-MM-DD)')
    detect_parser.add_argument('--days',
                               type=int,
                               help='Length of the trailing window in days')
    detect_parser.add_argument('--parallel',
                               action='store_true',
                               help='Run detectors concurrently')
    detect_parser.add_argument('--json',
                               action='store_true',
                               help='Print the run summary as JSON')


def setup_flag_commands(subparsers):
    """Set up flag review commands.

    Args:
        subparsers: argparse subparsers object
    """
    flags_parser = subparsers.add_parser('flags', help='Anomaly flag commands')
    flags_subparsers = flags_parser.add_subparsers(dest='flags_command', help='Flag command')

    list_parser = flags_subparsers.add_parser('list', help='List anomaly flags')
    list_parser.add_argument('--type',
                             choices=[t.value for t in FlagType],
                             help='Filter by flag type')
    list_parser.add_argument('--subject',
                             help='Filter by worker')
    list_parser.add_argument('--status',
                             help='Filter by status (active, resolved, dismissed)')

    resolve_parser = flags_subparsers.add_parser('resolve', help='Resolve an anomaly flag')
    resolve_parser.add_argument('flag_id', type=int, help='Flag ID')
    resolve_parser.add_argument('--status',
                                choices=['resolved', 'dismissed'],
                                default='resolved',
                                help='Closing status')
    resolve_parser.add_argument('--by', help='Operator resolving the flag')


def setup_db_commands(subparsers):
    """Set up database commands.

    Args:
        subparsers: argparse subparsers object
    """
    db_parser = subparsers.add_parser('db', help='Database commands')
    db_subparsers = db_parser.add_subparsers(dest='db_command', help='Database command')

    init_parser = db_subparsers.add_parser('init', help='Create database tables')
    init_parser.add_argument('--db-path', help='Path to database file (for SQLite)')
    init_parser.add_argument('--force',
                             action='store_true',
                             help='Force initialization even if database exists')


def run_detection(args):
    """Run anomaly detection over the configured database.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    overrides = {}
    if args.parallel:
        overrides['parallel'] = True
    config = DetectionConfig.from_settings(overrides)

    if args.window_start:
        window_start = parse_date(args.window_start)
        if window_start is None:
            print(f"Invalid window start: {args.window_start}")
            return 2
    else:
        window_start = default_window_start(args.days if args.days else config.window_days)

    try:
        with session_scope() as session:
            store = SqlAlchemyEvidenceStore(session)
            engine = AnomalyDetectionEngine(store, store, config)
            summary = engine.run(window_start=window_start)
    except FieldWatchError as e:
        logger.error(f"Anomaly detection failed: {e}")
        print(f"Error: {e}")
        return 1

    if args.json:
        print(safe_json_dumps(summary.to_dict(), indent=2))
        return 0

    print(f"Window start: {window_start.isoformat()}")
    print(f"Anomalies detected: {summary.anomalies_detected}")
    print(f"New flags stored: {summary.new_flags_stored}")

    for flag in summary.flags:
        print(f"  [{flag.severity.value}] {flag.flag_type.value} "
              f"subject={flag.subject_id} job={flag.job_id} confidence={flag.confidence:.2f}")

    for failure in summary.failures:
        print(f"  Failed to store {failure.flag.flag_type.value} for job {failure.flag.job_id}: {failure.error}")

    return 0


def list_flags(args):
    """List stored anomaly flags.

    Args:
        args: Command-line arguments
    """
    with session_scope() as session:
        flags = get_anomaly_flags(session, flag_type=args.type, staff_id=args.subject, status=args.status)

        if not flags:
            print("No flags found")
            return 0

        print(f"Found {len(flags)} flags:")
        for flag in flags:
            created = flag.created_at.isoformat() if flag.created_at else '-'
            print(f"{flag.flag_id}: [{flag.severity}] {flag.flag_type} subject={flag.staff_id} "
                  f"job={flag.job_id} status={flag.status} created={created}")
    return 0


def resolve_flag(args):
    """Resolve or dismiss a stored flag.

    Args:
        args: Command-line arguments
    """
    with session_scope() as session:
        flag = resolve_anomaly_flag(session, args.flag_id, status=args.status, resolved_by=args.by)
        if flag is None:
            print(f"Flag not found: {args.flag_id}")
            return 1
        print(f"Flag {flag.flag_id} marked {flag.status}")
    return 0


def init_db_command(args):
    """Create the database tables.

    Args:
        args: Command-line arguments
    """
    db_config = dict(get_section('database'))
    if args.db_path:
        db_config['db_type'] = 'sqlite'
        db_config['db_path'] = args.db_path

    initialize(db_config, force=args.force)
    return 0


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(description='FieldWatch field-service anomaly detection')
    subparsers = parser.add_subparsers(dest='command', help='Command')

    setup_detect_commands(subparsers)
    setup_flag_commands(subparsers)
    setup_db_commands(subparsers)

    return parser


def parse_args(args=None):
    """Parse command-line arguments.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments
    """
    return build_parser().parse_args(args)


def main(argv=None):
    """Main entry point for the FieldWatch CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(get_section('logging'))

    if args.command == 'detect':
        return run_detection(args)
    elif args.command == 'flags':
        if args.flags_command == 'list':
            return list_flags(args)
        elif args.flags_command == 'resolve':
            return resolve_flag(args)
    elif args.command == 'db':
        if args.db_command == 'init':
            return init_db_command(args)

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
