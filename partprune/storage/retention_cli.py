"""
Retention CLI for partprune.

This module provides the command-line interface for enforcing partition
retention, either across the tables of a configuration file or for one table
chosen at the prompt.
"""

import argparse
import sys
from typing import Callable, Optional

from ..monitoring.retention_metrics import RetentionMetrics
from .retention_catalog import QuestDBCatalog
from .retention_config import RetentionConfigManager, resolve_conn_str
from .retention_errors import StartupError
from .retention_executor import RetentionExecutor
from .retention_logging import RetentionLogger, setup_logging
from .retention_runner import BatchRunner, InteractiveRunner


def operator_prompt(question: str, validator: Optional[Callable[[str], Optional[str]]] = None,
                    input_fn: Optional[Callable[[str], str]] = None,
                    output: Optional[Callable[[str], None]] = None) -> str:
    """Ask the operator a question, re-asking while the validator rejects the answer."""
    input_fn = input_fn or input
    output = output or print
    while True:
        try:
            answer = input_fn(f"{question} ")
        except EOFError:
            return ""

        if validator is None or not answer.strip():
            return answer

        error = validator(answer)
        if error is None:
            return answer
        output(error)


def run_batch(args, connect=None) -> int:
    """Apply the configured retention to every table in the config file."""
    connect = connect or QuestDBCatalog.connect
    config_manager = RetentionConfigManager(args.config_path)
    config = config_manager.config
    dry_run = args.dry_run or config.dry_run

    metrics = RetentionMetrics() if config.metrics_textfile else None
    audit = RetentionLogger(args.log_dir or config.log_dir) if config.audit_log else None

    with connect(config_manager.get_conn_str(args.conn_str)) as catalog:
        runner = BatchRunner(catalog, RetentionExecutor(dry_run=dry_run), metrics=metrics, audit=audit)
        report = runner.run(config_manager.get_tables())

    for outcome in report:
        print(outcome.message)

    if metrics is not None:
        metrics.write_textfile(config.metrics_textfile)

    return 0 if report.succeeded else 1


def run_interactive(args, connect=None, prompt=operator_prompt) -> int:
    """Prune a single table chosen at the prompt."""
    connect = connect or QuestDBCatalog.connect
    audit = RetentionLogger(args.log_dir) if args.log_dir else None

    with connect(resolve_conn_str(args.conn_str)) as catalog:
        runner = InteractiveRunner(
            catalog,
            prompt=prompt,
            executor=RetentionExecutor(dry_run=args.dry_run),
            audit=audit,
        )
        outcome = runner.run()

    if not outcome.succeeded:
        print(f"error: {outcome.error}")
        return 1

    prefix = "[dry-run] " if outcome.dry_run else ""
    print(f"{prefix}deleted {outcome.rows_deleted} rows")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="partprune",
        description="Drop QuestDB partitions older than a retention period",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Apply retention to every table in the config
  partprune --config-path configs/retention.yaml

  # Show the statements without dropping anything
  partprune --config-path configs/retention.yaml --dry-run

  # Pick a table and a retention amount at the prompt
  partprune --interactive --conn-str "host=localhost user=admin password=quest port=8812"
        """
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('-c', '--config-path',
                      help='Path to retention configuration file')
    mode.add_argument('-i', '--interactive', action='store_true',
                      help='Choose a table and retention amount at the prompt')

    parser.add_argument('--conn-str',
                        help='Database connection string (overrides config and environment)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Print drop statements without executing them')
    parser.add_argument('--log-dir',
                        help='Directory for log files and audit reports')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(args.verbose, args.log_dir)

        if args.interactive:
            return run_interactive(args)
        return run_batch(args)

    except StartupError as e:
        print(e)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
